"""Tests for ID and payment reference generation."""

import re

from swiftjobs.services.id_generator import generate_id, generate_payment_reference

REFERENCE = re.compile(r"^SWF-\d{13}-[A-Z0-9]{6}-[0-9A-F]{4}$")


def test_prefixed_ids_are_unique():
    ids = {generate_id("job_") for _ in range(100)}
    assert len(ids) == 100
    assert all(i.startswith("job_") and len(i) == 20 for i in ids)


def test_payment_reference_format():
    assert REFERENCE.match(generate_payment_reference())


def test_payment_references_do_not_collide():
    refs = {generate_payment_reference() for _ in range(500)}
    assert len(refs) == 500
