"""
Heuristic prescription text parser.

Each non-blank line is read as one medication. Two line shapes are
recognised, after the ``every N hours`` and ``at HH:MM`` modifiers have been
pulled out of the line:

- ``Take 1 tablet of Aspirin at 09:00``
- ``Paracetamol 2 tablets every 8 hours``

Lines matching neither shape are skipped. There is no grammar and no
ambiguity resolution; the first number after the name is always the count,
and anything after it (``tablets``, ``mg``, ``after food``) is dropped.

>>> [p.model_dump() for p in parse_prescription("Paracetamol 2 tablets every 8 hours")]
[{'name': 'Paracetamol', 'count': 2, 'every_hours': 8, 'at_time': None}]
"""
import re
from typing import List, Optional

from .schemas import ParsedPrescription

_EVERY_RE = re.compile(r"\bevery\s*(\d+)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE)
_AT_RE = re.compile(r"\bat\s*(\d{1,2}:\d{2})\b", re.IGNORECASE)

# "take <count> [<form>] of <name>"
_TAKE_RE = re.compile(r"^take\s*(\d+)\s*(?:[a-z]+\s+)?of\s+(.+)$", re.IGNORECASE)

# "<name> <count>..." ; whatever follows the count (form, strength unit, notes) is ignored
_DOSE_RE = re.compile(r"^(.+?)\s+(\d+)")


def _strip_modifier(line: str, pattern: re.Pattern) -> tuple[str, Optional[str]]:
    m = pattern.search(line)
    if not m:
        return line, None
    rest = (line[: m.start()] + " " + line[m.end():]).strip()
    return " ".join(rest.split()), m.group(1)


def parse_line(line: str) -> Optional[ParsedPrescription]:
    line = " ".join(line.split())
    if not line:
        return None

    core, every = _strip_modifier(line, _EVERY_RE)
    core, at_time = _strip_modifier(core, _AT_RE)

    m = _TAKE_RE.match(core)
    if m:
        count, name = m.group(1), m.group(2)
    else:
        m = _DOSE_RE.match(core)
        if not m:
            return None
        name, count = m.group(1), m.group(2)

    name = name.strip(" ,;-")
    if not name:
        return None

    return ParsedPrescription(
        name=name,
        count=int(count) or 1,
        every_hours=int(every) if every else None,
        at_time=at_time,
    )


def parse_prescription(text: str) -> List[ParsedPrescription]:
    results: List[ParsedPrescription] = []
    for raw in text.splitlines():
        item = parse_line(raw.strip())
        if item is not None:
            results.append(item)
    return results
