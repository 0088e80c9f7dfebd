from django.utils import timezone


def next_document_number(model, field, prefix, on_date=None):
    """Next ``PREFIX-YYYYMMDD-NNNN`` value for ``model.field`` on the given day."""
    stem = f"{prefix}-{(on_date or timezone.localdate()):%Y%m%d}-"
    manager = getattr(model, "all_objects", model.objects)
    taken = manager.filter(**{f"{field}__startswith": stem})
    sequence = taken.count() + 1
    while taken.filter(**{field: f"{stem}{sequence:04d}"}).exists():
        sequence += 1
    return f"{stem}{sequence:04d}"
