"""
Tests for booking reference generation.
"""

import re

from eventflow.services.booking_service import generate_booking_reference

REFERENCE_PATTERN = re.compile(r"^BK-[0-9A-F]{12}-\d{6}$")


def test_reference_format():
    assert REFERENCE_PATTERN.match(generate_booking_reference())


def test_references_are_unique():
    references = {generate_booking_reference() for _ in range(10000)}
    assert len(references) == 10000
