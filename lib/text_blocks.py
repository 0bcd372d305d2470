"""
Parsing helpers for the labeled plain-text blocks the language model returns,
e.g.

    Title:
    Facing Presentation Anxiety

    Goals:
    - Practice with a colleague
    - Record a rehearsal
"""
import re
from typing import List, Optional

_BULLET = re.compile(r'^[-•*]')


def extract_block(raw: str, label: str) -> str:
    """
    Return the text after "<label>:" up to the next line that starts with a
    "Word:" label, or the end of the string. Empty string if the label is missing.
    """
    if not raw:
        return ''
    pattern = re.compile(
        rf'(?<!\w){re.escape(label)}:[ \t]*(.*?)(?=\n\w+:|\Z)',
        re.IGNORECASE | re.DOTALL,
    )
    match = pattern.search(raw)
    return match.group(1).strip() if match else ''


def split_lines(block: str) -> List[str]:
    """Split a bulleted block into items, dropping bullets and blank lines"""
    items = []
    for line in block.split('\n'):
        item = _BULLET.sub('', line.strip(), count=1).strip()
        if item:
            items.append(item)
    return items


def extract_list(raw: str, label: str) -> List[str]:
    return split_lines(extract_block(raw, label))


def extract_between(raw: str, start: str, end: Optional[str] = None) -> str:
    """Text between "<start>:" and "<end>:" (or the end of the string), trimmed"""
    if not raw:
        return ''
    if end:
        pattern = rf'{re.escape(start)}:\s*(.*?){re.escape(end)}:'
    else:
        pattern = rf'{re.escape(start)}:\s*(.*)$'
    match = re.search(pattern, raw, re.DOTALL)
    return match.group(1).strip() if match else ''


def unique_items(items: List[str]) -> List[str]:
    """Drop case-insensitive repeats, keeping the first occurrence"""
    seen = set()
    result = []
    for item in items:
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            result.append(item)
    return result
