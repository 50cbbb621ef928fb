"""
Document numbers: PREFIX + YYYYMMDD + zero-padded daily sequence.

    ADJ20250831001, RTN202508310001
"""

from django.utils import timezone


def next_document_number(model, prefix: str, width: int) -> str:
    """Next free number for today; a concurrent duplicate fails on the unique key."""
    stem = f"{prefix}{timezone.localdate():%Y%m%d}"
    suffixes = (
        number[len(stem):]
        for number in model.objects.filter(number__startswith=stem).values_list('number', flat=True)
    )
    sequence = max((int(s) for s in suffixes if s.isdigit()), default=0) + 1
    return f"{stem}{sequence:0{width}d}"
