import logging
import time
from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from ...errors import NotFoundError, ValidationError
from ...observability import time_tracking_metrics
from ...utils import utc_now, to_uk_time, week_bounds, week_number, append_note, to_uuid
from ..approvals import APPROVED

logger = logging.getLogger(__name__)

ENTRY_WORK = 'work'
ENTRY_OVERTIME = 'overtime'
ENTRY_EXPENSE = 'expense'
ENTRY_TYPES = (ENTRY_WORK, ENTRY_OVERTIME, ENTRY_EXPENSE)

DEFAULT_ACCOUNT_CODES = {
    ENTRY_WORK: '323',
    ENTRY_OVERTIME: '322',
    ENTRY_EXPENSE: '322',
}
DEFAULT_TAX_TYPE = 'No VAT'
GENERAL_PROJECT = 'General'

EDITABLE_FIELDS = ('entry_type', 'expense_type', 'quantity', 'unit_amount', 'project_id', 'project_name',
                   'account_code', 'tax_type')


def default_account_code(entry_type: str) -> str:
    return DEFAULT_ACCOUNT_CODES.get(entry_type, DEFAULT_ACCOUNT_CODES[ENTRY_WORK])


def generate_description(entry_type: str, work_date: date, expense_type: Optional[str] = None) -> str:
    """
    Invoice line text, e.g. "Construction Work - 06/01/2025 - Week 2 2025".
    """
    suffix = f"{work_date.strftime('%d/%m/%Y')} - Week {week_number(work_date)} {work_date.year}"
    if entry_type == ENTRY_OVERTIME:
        return f"Overtime Work - {suffix}"
    if entry_type == ENTRY_EXPENSE:
        return f"{expense_type or 'Expense'} - {suffix}"
    return f"Construction Work - {suffix}"


def line_total(item) -> float:
    return round(float(item.quantity or 0) * float(item.unit_amount or 0), 2)


def calculate_totals(items) -> Dict[str, float]:
    totals = {ENTRY_WORK: 0.0, ENTRY_OVERTIME: 0.0, ENTRY_EXPENSE: 0.0}
    for item in items:
        if item.entry_type in totals:
            totals[item.entry_type] += line_total(item)
    result = {f'{k}_total': round(v, 2) for k, v in totals.items()}
    result['grand_total'] = round(sum(totals.values()), 2)
    return result


def group_items_by_worker(items) -> "OrderedDict[Any, List]":
    groups = OrderedDict()
    for item in items:
        groups.setdefault(item.worker_id, []).append(item)
    return groups


def line_item_to_dict(item) -> Dict[str, Any]:
    worker = item.worker
    return {
        'id': str(item.id),
        'organization_id': str(item.organization_id),
        'week_start': item.week_start.isoformat(),
        'worker_id': str(item.worker_id),
        'worker_name': worker.name if worker else None,
        'worker_email': worker.email if worker else None,
        'worker_address': worker.address if worker else None,
        'work_date': item.work_date.isoformat(),
        'entry_type': item.entry_type,
        'expense_type': item.expense_type,
        'quantity': float(item.quantity or 0),
        'unit_amount': float(item.unit_amount or 0),
        'line_total': line_total(item),
        'project_id': str(item.project_id) if item.project_id else None,
        'project_name': item.project_name,
        'account_code': item.account_code,
        'tax_type': item.tax_type,
        'description_generated': item.description_generated,
        'source_clock_entry_id': str(item.source_clock_entry_id) if item.source_clock_entry_id else None,
        'source_additional_cost_id': str(item.source_additional_cost_id) if item.source_additional_cost_id else None,
        'is_deleted': bool(item.is_deleted),
    }


class LineItemService:
    def __init__(self, line_item_repo, clock_repo, additional_cost_repo, clock_service):
        self.line_item_repo = line_item_repo
        self.clock_repo = clock_repo
        self.additional_cost_repo = additional_cost_repo
        self.clock_service = clock_service

    def build_from_source(self, organization_id, week_start: date) -> List[Dict[str, Any]]:
        """
        Derive line item fields for a week from clock entries and expenses.

        Work and approved overtime entries are grouped per worker, day, job
        and overtime flag with hours summed. Each expense becomes its own
        line. Nothing is persisted.

        Returns:
            List of field dicts sorted by worker name then date
        """
        start, end = week_bounds(week_start)
        entries = self.clock_repo.get_for_organization_in_range(organization_id, start, end, closed_only=True)

        groups = OrderedDict()
        for entry in entries:
            is_overtime = bool(entry.is_overtime)
            if is_overtime and entry.ot_status != APPROVED:
                continue
            work_date = to_uk_time(entry.clock_in).date()
            key = (entry.worker_id, work_date, entry.job_id, is_overtime)
            if key in groups:
                groups[key]['quantity'] += float(entry.total_hours or 0)
                continue
            entry_type = ENTRY_OVERTIME if is_overtime else ENTRY_WORK
            groups[key] = {
                'worker_id': entry.worker_id,
                'worker_name': entry.worker.name if entry.worker else '',
                'work_date': work_date,
                'entry_type': entry_type,
                'expense_type': None,
                'quantity': float(entry.total_hours or 0),
                'unit_amount': float(entry.worker.hourly_rate or 0) if entry.worker else 0.0,
                'project_id': entry.job_id,
                'project_name': entry.job.name if entry.job else 'Unknown Job',
                'account_code': default_account_code(entry_type),
                'tax_type': DEFAULT_TAX_TYPE,
                'source_clock_entry_id': entry.id,
                'source_additional_cost_id': None,
            }

        fields = []
        for group in groups.values():
            group['quantity'] = round(group['quantity'], 2)
            group['description_generated'] = generate_description(group['entry_type'], group['work_date'])
            fields.append(group)

        costs = self.additional_cost_repo.get_for_organization_in_range(
            organization_id, week_start, week_start + timedelta(days=6)
        )
        for cost in costs:
            expense_type = cost.expense_type
            expense_name = (expense_type.name if expense_type else None) or cost.description or 'Expense'
            entry = cost.clock_entry
            job = entry.job if entry else None
            quantity = 1.0
            calculation_type = expense_type.calculation_type if expense_type else 'flat_rate'
            if calculation_type == 'hourly_multiplied' and entry and entry.total_hours:
                quantity = float(entry.total_hours)
            fields.append({
                'worker_id': cost.worker_id,
                'worker_name': cost.worker.name if cost.worker else '',
                'work_date': cost.date,
                'entry_type': ENTRY_EXPENSE,
                'expense_type': expense_name,
                'quantity': quantity,
                'unit_amount': float(cost.amount or 0),
                'project_id': job.id if job else None,
                'project_name': job.name if job else GENERAL_PROJECT,
                'account_code': default_account_code(ENTRY_EXPENSE),
                'tax_type': DEFAULT_TAX_TYPE,
                'description_generated': generate_description(ENTRY_EXPENSE, cost.date, expense_name),
                'source_clock_entry_id': cost.clock_entry_id,
                'source_additional_cost_id': cost.id,
            })

        fields.sort(key=lambda f: ((f['worker_name'] or '').lower(), f['work_date']))
        return fields

    def _persist(self, organization_id, week_start, fields):
        items = []
        for f in fields:
            data = {k: v for k, v in f.items() if k != 'worker_name'}
            items.append(self.line_item_repo.add(organization_id=organization_id, week_start=week_start, **data))
        self.line_item_repo.commit()
        return items

    @staticmethod
    def _sorted(items):
        return sorted(items, key=lambda i: ((i.worker.name if i.worker else '').lower(), i.work_date))

    def get_or_generate(self, organization_id, week_start: date):
        """
        Persisted non-deleted items of the week. When none are left (never
        generated, or every item deleted) the week is rebuilt from source
        and persisted; leftover soft-deleted rows are removed first.
        """
        started = time.perf_counter()
        items = self.line_item_repo.get_for_week(organization_id, week_start)
        if items:
            operation = 'load'
        else:
            try:
                self.line_item_repo.delete_week(organization_id, week_start)
                items = self._persist(organization_id, week_start, self.build_from_source(organization_id, week_start))
            except Exception:
                self.line_item_repo.rollback()
                raise
            operation = 'generate'
            logger.info(f"Generated {len(items)} line items for organization {organization_id} week {week_start}")
        time_tracking_metrics.observe_report_latency(time.perf_counter() - started, operation)
        return self._sorted(items)

    def regenerate(self, organization_id, week_start: date):
        """Discard the week's items (edits included) and rebuild from source."""
        started = time.perf_counter()
        try:
            deleted = self.line_item_repo.delete_week(organization_id, week_start)
            items = self._persist(organization_id, week_start, self.build_from_source(organization_id, week_start))
        except Exception:
            self.line_item_repo.rollback()
            raise
        time_tracking_metrics.observe_report_latency(time.perf_counter() - started, 'regenerate')
        logger.info(f"Regenerated week {week_start} for organization {organization_id}: "
                    f"{deleted} removed, {len(items)} created")
        return self._sorted(items)

    def _validate_updates(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        clean = {k: updates[k] for k in EDITABLE_FIELDS if k in updates}
        if 'entry_type' in clean and clean['entry_type'] not in ENTRY_TYPES:
            raise ValidationError(f"entry_type must be one of {', '.join(ENTRY_TYPES)}")
        for key in ('quantity', 'unit_amount'):
            if key in clean:
                try:
                    clean[key] = round(float(clean[key]), 2)
                except (TypeError, ValueError):
                    raise ValidationError(f'{key} must be a number')
                if clean[key] < 0:
                    raise ValidationError(f'{key} cannot be negative')
        if 'project_id' in clean:
            try:
                clean['project_id'] = to_uuid(clean['project_id'])
            except ValueError:
                raise ValidationError('Invalid project_id')
        if 'account_code' in clean and not clean['account_code']:
            clean.pop('account_code')
        return clean

    def update_item(self, item, updates: Dict[str, Any], actor):
        """
        Apply a manual correction to a line item.

        A quantity change on a work or overtime line rewrites the source
        clock entry's hours and records a report_edit history row. An entry
        type change flips the source entry's overtime flag.
        """
        clean = self._validate_updates(updates)
        old_entry_type = item.entry_type
        old_quantity = float(item.quantity or 0)
        new_entry_type = clean.get('entry_type', item.entry_type)

        if 'entry_type' in clean or 'expense_type' in clean:
            item.description_generated = generate_description(
                new_entry_type, item.work_date, clean.get('expense_type', item.expense_type)
            )
        if 'entry_type' in clean and 'account_code' not in clean and new_entry_type != old_entry_type:
            clean['account_code'] = default_account_code(new_entry_type)

        source = None
        if item.source_clock_entry_id and old_entry_type != ENTRY_EXPENSE:
            source = self.clock_repo.get_by_id(item.source_clock_entry_id)

        try:
            if source is not None and 'quantity' in clean and clean['quantity'] != old_quantity:
                new_quantity = clean['quantity']
                old_hours = source.total_hours
                source.total_hours = new_quantity
                source.notes = append_note(
                    source.notes,
                    f"Hours updated via report editor from {old_quantity:g} to {new_quantity:g} on {utc_now().date().isoformat()}",
                )
                self.clock_service.record_history(
                    source, 'report_edit', source.clock_in, source.clock_out, old_hours,
                    changed_by=actor.id,
                    notes='Hours updated via report editor',
                    metadata={
                        'source': 'report_editor',
                        'report_week': item.week_start.isoformat(),
                        'work_date': item.work_date.isoformat(),
                    },
                )
            if source is not None and 'entry_type' in clean:
                source.is_overtime = new_entry_type == ENTRY_OVERTIME

            for key, value in clean.items():
                setattr(item, key, value)
            self.line_item_repo.commit()
        except Exception:
            self.line_item_repo.rollback()
            raise
        return item

    def delete_item(self, item):
        item.is_deleted = True
        self.line_item_repo.commit()
        return item

    def get_item(self, item_id, organization_id):
        item = self.line_item_repo.get_for_organization(item_id, organization_id)
        if not item or item.is_deleted:
            raise NotFoundError('Line item not found')
        return item
