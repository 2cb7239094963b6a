from decimal import Decimal, InvalidOperation
import unicodedata

from django.utils import timezone

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from core.models import Store

UNICODE_LATIN_REPLACEMENTS = str.maketrans({
	'\u2014': '-',  # em dash
	'\u2013': '-',  # en dash
	'\u2212': '-',  # minus sign
	'\u00a0': ' ',  # non-breaking space
	'\u2022': '*',
	'\u2026': '...',
	'\u2018': "'",
	'\u2019': "'",
	'\u201c': '"',
	'\u201d': '"',
})

BOBINA_WIDTH = 80
BOBINA_HEIGHT = 297


def _latin(text):
	if text is None:
		return ''
	if not isinstance(text, str):
		text = str(text)
	text = text.translate(UNICODE_LATIN_REPLACEMENTS)
	try:
		return text.encode('latin-1').decode('latin-1')
	except UnicodeEncodeError:
		normalized = unicodedata.normalize('NFKD', text)
		return normalized.encode('latin-1', 'ignore').decode('latin-1')


def _format_decimal(value, places=2):
	if value in (None, ''):
		return '0,00'
	try:
		number = Decimal(value)
	except (InvalidOperation, TypeError, ValueError):
		number = Decimal('0')
	return f'{{0:.{places}f}}'.format(number).replace('.', ',')


def _format_currency(value):
	return f'R$ {_format_decimal(value, 2)}'


def _truncate(text, max_length):
	text = str(text or '')
	return text if len(text) <= max_length else text[: max_length - 3] + '...'


def _title(sale):
	return f'Orçamento {sale.sale_number}' if sale.is_quote else f'Pedido {sale.sale_number}'


def _header_lines(sale):
	store = sale.store
	lines = []
	if store.cnpj:
		lines.append(f'CNPJ: {store.formatted_cnpj}')
	if store.address:
		lines.append(store.address)
	contact = ' / '.join(part for part in (store.phone, store.email) if part)
	if contact:
		lines.append(contact)
	return lines


def _customer_lines(sale):
	customer = sale.customer
	lines = [customer.name]
	if customer.document:
		lines.append(f'Documento: {customer.formatted_document}')
	if customer.phone:
		lines.append(f'Telefone: {customer.phone}')
	if sale.delivery_type == sale.DeliveryType.DELIVERY and sale.delivery_address:
		lines.append(f'Entrega: {sale.delivery_address.full_address}')
		if sale.delivery_date:
			lines.append(f'Data de entrega: {sale.delivery_date:%d/%m/%Y}')
	return lines


def _totals(sale):
	rows = [('Subtotal', sale.subtotal)]
	if sale.discount_amount:
		rows.append(('Desconto', -sale.discount_amount))
	rows.append(('Total', sale.total))
	return rows


def _payment_lines(sale):
	lines = []
	for payment in sale.payments.select_related('payment_method'):
		label = payment.payment_method.name
		if payment.installments > 1:
			label = f'{label} ({payment.installments}x)'
		lines.append((label, payment.amount))
	return lines


def _render_a4(sale):
	pdf = FPDF()
	pdf.set_auto_page_break(auto=True, margin=20)
	pdf.add_page()

	pdf.set_font('Helvetica', 'B', 16)
	pdf.cell(0, 10, _latin(sale.store.name), ln=True)
	pdf.set_font('Helvetica', '', 10)
	for line in _header_lines(sale):
		pdf.cell(0, 5, _latin(line), ln=True)
	pdf.ln(3)

	pdf.set_font('Helvetica', 'B', 12)
	pdf.cell(0, 7, _latin(_title(sale)), ln=True)
	pdf.set_font('Helvetica', '', 10)
	issued = timezone.localtime(sale.completed_at or sale.created_at)
	pdf.cell(0, 6, _latin(f'Emissão: {issued:%d/%m/%Y %H:%M}'), ln=True)
	pdf.cell(0, 6, _latin(f'Situação: {sale.get_status_display()}'), ln=True)
	if sale.created_by:
		pdf.cell(0, 6, _latin(f'Vendedor: {sale.created_by.get_full_name() or sale.created_by.get_username()}'), ln=True)
	pdf.ln(4)

	pdf.set_font('Helvetica', 'B', 11)
	pdf.cell(0, 6, 'Cliente', ln=True)
	pdf.set_font('Helvetica', '', 10)
	for line in _customer_lines(sale):
		pdf.cell(0, 5, _latin(line), ln=True)
	pdf.ln(6)

	columns = [
		('code', 'Código', 18, 'L'),
		('description', 'Descrição', 78, 'L'),
		('quantity', 'Qtd.', 18, 'R'),
		('unit_price', 'Valor Unit.', 26, 'R'),
		('discount', 'Desconto', 24, 'R'),
		('total', 'Subtotal', 26, 'R'),
	]
	pdf.set_font('Helvetica', 'B', 8)
	pdf.set_fill_color(240, 240, 240)
	for _, header, width, align in columns:
		pdf.cell(width, 6, _latin(header), border=1, align=align, fill=True)
	pdf.ln(6)

	pdf.set_font('Helvetica', '', 8)
	for item in sale.items.select_related('product'):
		row = {
			'code': item.product.internal_code,
			'description': _truncate(item.product_name or item.product.name, 48),
			'quantity': _format_decimal(item.quantity, 3),
			'unit_price': _format_currency(item.unit_price),
			'discount': _format_currency(item.discount_amount) if item.discount_amount else '',
			'total': _format_currency(item.total),
		}
		for key, _, width, align in columns:
			pdf.cell(width, 5, _latin(row[key]), border=1, align=align)
		pdf.ln(5)
	pdf.ln(4)

	pdf.set_font('Helvetica', '', 10)
	for label, value in _totals(sale):
		if label == 'Total':
			pdf.set_font('Helvetica', 'B', 11)
		pdf.cell(150, 6, _latin(label), align='R')
		pdf.cell(40, 6, _latin(_format_currency(value)), align='R', ln=True)

	payments = _payment_lines(sale)
	if payments:
		pdf.ln(4)
		pdf.set_font('Helvetica', 'B', 11)
		pdf.cell(0, 6, 'Pagamento', ln=True)
		pdf.set_font('Helvetica', '', 10)
		for label, value in payments:
			pdf.cell(150, 5, _latin(label))
			pdf.cell(40, 5, _latin(_format_currency(value)), align='R', ln=True)

	if sale.notes:
		pdf.ln(4)
		pdf.set_font('Helvetica', 'B', 11)
		pdf.cell(0, 6, 'Observações', ln=True)
		pdf.set_font('Helvetica', '', 10)
		pdf.multi_cell(0, 5, _latin(sale.notes), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
	return pdf


def _render_bobina(sale):
	pdf = FPDF(unit='mm', format=(BOBINA_WIDTH, BOBINA_HEIGHT))
	pdf.set_margins(4, 4, 4)
	pdf.set_auto_page_break(auto=True, margin=4)
	pdf.add_page()
	width = BOBINA_WIDTH - 8

	pdf.set_font('Helvetica', 'B', 11)
	pdf.multi_cell(width, 5, _latin(sale.store.name), align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
	pdf.set_font('Helvetica', '', 7)
	for line in _header_lines(sale):
		pdf.multi_cell(width, 3.5, _latin(line), align='C', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
	pdf.ln(2)

	pdf.set_font('Helvetica', 'B', 9)
	pdf.cell(width, 5, _latin(_title(sale)), align='C', ln=True)
	pdf.set_font('Helvetica', '', 7)
	issued = timezone.localtime(sale.completed_at or sale.created_at)
	pdf.cell(width, 4, _latin(f'{issued:%d/%m/%Y %H:%M}'), align='C', ln=True)
	for line in _customer_lines(sale):
		pdf.multi_cell(width, 3.5, _latin(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
	pdf.cell(width, 3, '-' * 48, ln=True)

	for item in sale.items.select_related('product'):
		pdf.multi_cell(width, 3.5, _latin(f'{item.product.internal_code} {item.product_name or item.product.name}'), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
		detail = f'{_format_decimal(item.quantity, 3)} x {_format_currency(item.unit_price)}'
		if item.discount_amount:
			detail = f'{detail} - desc. {_format_currency(item.discount_amount)}'
		pdf.cell(width - 22, 3.5, _latin(detail))
		pdf.cell(22, 3.5, _latin(_format_currency(item.total)), align='R', ln=True)
	pdf.cell(width, 3, '-' * 48, ln=True)

	for label, value in _totals(sale):
		pdf.set_font('Helvetica', 'B' if label == 'Total' else '', 8)
		pdf.cell(width - 26, 4, _latin(label))
		pdf.cell(26, 4, _latin(_format_currency(value)), align='R', ln=True)
	pdf.set_font('Helvetica', '', 7)
	for label, value in _payment_lines(sale):
		pdf.cell(width - 26, 3.5, _latin(label))
		pdf.cell(26, 3.5, _latin(_format_currency(value)), align='R', ln=True)
	if sale.notes:
		pdf.ln(1)
		pdf.multi_cell(width, 3.5, _latin(sale.notes), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
	return pdf


def render_sale_receipt(sale, print_format=None) -> bytes:
	"""Render the receipt of ``sale`` as PDF bytes, in the store's print format unless one is given."""
	print_format = print_format or sale.store.pdv_print_format
	if print_format == Store.PrintFormat.BOBINA:
		pdf = _render_bobina(sale)
	else:
		pdf = _render_a4(sale)
	return bytes(pdf.output())
