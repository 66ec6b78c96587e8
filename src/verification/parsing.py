"""
Field extraction from OCR text of an ID card.
"""

from __future__ import annotations

import re
from typing import Dict

# Groups separated by a space or tab on one line, not glued to other digits
ID_NUMBER_PATTERN = re.compile(r"(?<!\d)\d{4}[ \t]\d{4}[ \t]\d{4}(?!\d)")
DOB_PATTERN = re.compile(r"\d{2}/\d{2}/\d{4}")
NAME_PATTERN = re.compile(r"^\s*name\s*[:\-]\s*(?P<name>[^\n\r]+?)\s*$", re.IGNORECASE | re.MULTILINE)

NO_NAME = "No Name Found"
NO_ID = "No ID Found"
NO_DOB = "No DOB Found"


def extract_fields(text: str) -> Dict[str, str]:
    """
    Pull name, ID number and date of birth out of raw OCR text.

    The first match of each pattern wins. Missing fields get a
    "No ... Found" placeholder rather than being dropped.
    """
    text = text or ""

    id_match = ID_NUMBER_PATTERN.search(text)
    dob_match = DOB_PATTERN.search(text)
    name_match = NAME_PATTERN.search(text)

    return {
        "name": name_match.group("name") if name_match else NO_NAME,
        "idNumber": id_match.group(0) if id_match else NO_ID,
        "dob": dob_match.group(0) if dob_match else NO_DOB,
    }
