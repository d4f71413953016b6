"""Tests for record reconciliation."""

from schoolpay.domain.entities import Parent, Student, Transaction
from schoolpay.domain.reconcile import (
    count_new_keys,
    dedupe_parents,
    dedupe_students,
    dedupe_transactions,
    merge_into,
    merge_records,
    parent_key,
    student_key,
)


def test_parent_key_fallbacks():
    """Parents are keyed by code, then secondary code, then name."""
    assert parent_key(Parent(name="Mona", code="P-100")) == "p100"
    assert parent_key(Parent(name="Mona", code2="P-101")) == "p101"
    assert parent_key(Parent(name="Mona Hassan")) == "monahassan"
    assert parent_key(Parent()) == ""


def test_student_key_fallback():
    """Students without a code are keyed by name and parent code."""
    assert student_key(Student(name="Omar", student_code="S-1")) == "s1"
    assert student_key(Student(name="Omar", parent_code="P-100")) == "omarp100"


def test_merge_records_keeps_current_non_empty():
    """Existing non-empty fields win; blanks are filled from the other record."""
    current = Parent(name="Mona", code="P-100", phone="")
    incoming = Parent(name="Mona H.", code="P-100", phone="0100")
    merged = merge_records(current, incoming)
    assert merged.name == "Mona"
    assert merged.phone == "0100"


def test_merge_records_whitespace_counts_as_empty():
    """Whitespace-only values are replaced."""
    merged = merge_records(Parent(code="P-1", email="  "), Parent(code="P-1", email="a@b.c"))
    assert merged.email == "a@b.c"


def test_dedupe_parents_first_seen_order():
    """Duplicates collapse into the first occurrence's position."""
    parents = [
        Parent(name="A", code="1"),
        Parent(name="B", code="2"),
        Parent(name="", code="1", email="a@x.com"),
    ]
    result = dedupe_parents(parents)
    assert [p.code for p in result] == ["1", "2"]
    assert result[0].name == "A"
    assert result[0].email == "a@x.com"


def test_dedupe_matches_codes_loosely():
    """Codes differing only in separators are the same parent."""
    result = dedupe_parents([Parent(code="P-100"), Parent(code="p100", name="Mona")])
    assert len(result) == 1
    assert result[0].name == "Mona"


def test_dedupe_drops_records_without_key():
    """Records with no identity are dropped."""
    assert dedupe_students([Student(), Student(name="Omar", student_code="S-1")]) == [
        Student(name="Omar", student_code="S-1")
    ]
    assert dedupe_transactions([Transaction(id="  "), Transaction(id="R-1")]) == [Transaction(id="R-1")]


def test_dedupe_is_idempotent():
    """Deduplicating twice changes nothing."""
    transactions = [
        Transaction(id="R-1", customer="A"),
        Transaction(id="R-2"),
        Transaction(id="R-1", status="Success"),
    ]
    once = dedupe_transactions(transactions)
    assert dedupe_transactions(once) == once


def test_merge_into_incoming_wins():
    """Uploaded values win over stored ones; stored values fill gaps."""
    existing = [Student(name="Omar", student_code="S-1", grade="Grade 1", classification="A")]
    incoming = [Student(name="Omar", student_code="S-1", grade="Grade 2")]
    result = merge_into(incoming, existing, student_key)
    assert len(result) == 1
    assert result[0].grade == "Grade 2"
    assert result[0].classification == "A"


def test_count_new_keys():
    """Only distinct keys absent from the stored collection count as new."""
    existing = [Transaction(id="R-1")]
    incoming = [Transaction(id="R-1"), Transaction(id="R-2"), Transaction(id="R-2")]
    assert count_new_keys(incoming, existing, lambda t: t.id) == 1
