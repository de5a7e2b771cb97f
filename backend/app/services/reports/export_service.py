import csv
import re
import unicodedata
from datetime import timedelta
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ...utils import to_uk_time
from .line_item_service import group_items_by_worker, calculate_totals

INVOICE_HEADERS = [
    'ContactName',
    'EmailAddress',
    'POAddressLine1',
    'POCity',
    'PORegion',
    'POPostalCode',
    'InvoiceNumber',
    'InvoiceDate',
    'DueDate',
    'Description',
    'Quantity',
    'UnitAmount',
    'AccountCode',
    'TaxType',
    'TrackingName1',
    'TrackingOption1',
]

TIMESHEET_HEADERS = [
    'Date',
    'Job Code',
    'Job Name',
    'Clock In Time',
    'Clock Out Time',
    'Total Hours',
    'Has Clock In Photo',
    'Has Clock Out Photo',
]

CONTACT_POSTCODE_RE = re.compile(r'^[A-Z]{1,2}[0-9]{1,2}[A-Z]?\s?[0-9][A-Z]{2}$', re.IGNORECASE)


def parse_contact_address(address):
    """
    Split a worker's free-text address into invoice contact fields.

    The last comma-separated part is the postcode when it looks like one;
    the part before it is the city and the one before that the region.
    """
    empty = {'address_line_1': '', 'city': '', 'region': '', 'postcode': ''}
    if not address:
        return empty
    parts = [p.strip() for p in address.split(',')]
    last = parts[-1] if parts else ''
    postcode = last if CONTACT_POSTCODE_RE.match(last) else ''
    city = ''
    if postcode and len(parts) >= 2:
        city = parts[-2]
    elif len(parts) >= 2:
        city = parts[1]
    region = parts[-3] if postcode and len(parts) >= 3 else ''
    return {'address_line_1': parts[0], 'city': city, 'region': region, 'postcode': postcode}


def _fmt_number(value) -> str:
    return f"{float(value or 0):g}"


class ReportExportService:
    @staticmethod
    def safe_label(value: str) -> str:
        if not value:
            return ''
        normalized = unicodedata.normalize('NFKC', value)
        cleaned = [ch if unicodedata.category(ch)[0] in {'L', 'N'} else '_' for ch in normalized]
        return '_'.join(filter(None, ''.join(cleaned).strip('_').split('_')))

    @staticmethod
    def invoice_number(week_start, worker_id) -> str:
        week_end = week_start + timedelta(days=6)
        return f"WE-{week_end.strftime('%Y%m%d')}-{str(worker_id)[-4:]}"

    def invoice_rows(self, items, week_start):
        """One invoice per worker; one row per line item."""
        invoice_date = week_start.isoformat()
        due_date = (week_start + timedelta(days=7)).isoformat()
        rows = []
        for worker_id, worker_items in group_items_by_worker(items).items():
            worker = worker_items[0].worker
            contact = parse_contact_address(worker.address if worker else None)
            number = self.invoice_number(week_start, worker_id)
            for item in worker_items:
                rows.append([
                    worker.name if worker else '',
                    worker.email if worker else '',
                    contact['address_line_1'],
                    contact['city'],
                    contact['region'],
                    contact['postcode'],
                    number,
                    invoice_date,
                    due_date,
                    item.description_generated,
                    _fmt_number(item.quantity),
                    _fmt_number(item.unit_amount),
                    item.account_code,
                    item.tax_type,
                    'Job',
                    item.project_name or '',
                ])
        return rows

    def export_invoices_csv(self, items, week_start):
        csv_buffer = StringIO()
        writer = csv.writer(csv_buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writerow(INVOICE_HEADERS)
        writer.writerows(self.invoice_rows(items, week_start))

        output = BytesIO(csv_buffer.getvalue().encode('utf-8-sig'))
        output.seek(0)
        week_end = week_start + timedelta(days=6)
        return output, f"weekly-report-{week_end.isoformat()}.csv"

    def export_invoices_xlsx(self, items, week_start):
        workbook = Workbook()
        ws = workbook.active
        ws.title = 'Invoices'
        ws.append(INVOICE_HEADERS)
        for row in self.invoice_rows(items, week_start):
            # Numbers as numbers so totals work in the spreadsheet
            row[10] = float(row[10])
            row[11] = float(row[11])
            ws.append(row)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for col, header in enumerate(INVOICE_HEADERS, start=1):
            ws.column_dimensions[get_column_letter(col)].width = max(12, len(header) + 2)
        ws.column_dimensions[get_column_letter(10)].width = 48
        ws.freeze_panes = 'A2'

        summary = workbook.create_sheet('Summary')
        summary.append(['Worker', 'Work', 'Overtime', 'Expenses', 'Total'])
        for worker_items in group_items_by_worker(items).values():
            worker = worker_items[0].worker
            totals = calculate_totals(worker_items)
            summary.append([
                worker.name if worker else '',
                totals['work_total'],
                totals['overtime_total'],
                totals['expense_total'],
                totals['grand_total'],
            ])
        grand = calculate_totals(items)
        summary.append(['Total', grand['work_total'], grand['overtime_total'], grand['expense_total'], grand['grand_total']])
        for cell in summary[1]:
            cell.font = Font(bold=True)
        for cell in summary[summary.max_row]:
            cell.font = Font(bold=True)
        summary.column_dimensions['A'].width = 28

        output = BytesIO()
        workbook.save(output)
        output.seek(0)
        week_end = week_start + timedelta(days=6)
        return output, f"weekly-report-{week_end.isoformat()}.xlsx"

    def export_timesheet_csv(self, worker, entries, week_start):
        csv_buffer = StringIO()
        writer = csv.writer(csv_buffer)
        writer.writerow(TIMESHEET_HEADERS)
        total = 0.0
        for entry in entries:
            clock_in = to_uk_time(entry.clock_in)
            clock_out = to_uk_time(entry.clock_out) if entry.clock_out else None
            hours = float(entry.total_hours or 0)
            total += hours
            writer.writerow([
                clock_in.strftime('%d/%m/%Y'),
                entry.job.code if entry.job else '',
                entry.job.name if entry.job else '',
                clock_in.strftime('%H:%M'),
                clock_out.strftime('%H:%M') if clock_out else '',
                f"{hours:.2f}" if entry.clock_out else '',
                'Yes' if entry.clock_in_photo else 'No',
                'Yes' if entry.clock_out_photo else 'No',
            ])
        writer.writerow(['Total', '', '', '', '', f"{total:.2f}", '', ''])

        output = BytesIO(csv_buffer.getvalue().encode('utf-8-sig'))
        output.seek(0)
        label = self.safe_label(worker.name) or str(worker.id)
        return output, f"timesheet_{label}_{week_start.isoformat()}.csv"
