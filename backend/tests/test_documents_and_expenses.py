from __future__ import annotations

import pytest

from leasekeeper.domain.expenses import compute_expense
from leasekeeper.errors import FileSystemError, ValidationError
from leasekeeper.services.documents import UploadedFile


def test_store_saves_under_folder_and_removes(store):
    paths = store.save([UploadedFile("lease agreement.pdf", b"pdf")], folder="leases/1")

    assert len(paths) == 1
    assert paths[0].startswith("leases/1/")
    assert paths[0].endswith("lease_agreement.pdf")
    assert store.resolve(paths[0]).read_bytes() == b"pdf"

    store.remove(paths)
    assert not (store.root / paths[0]).exists()


def test_store_limits_file_count(store):
    with pytest.raises(ValidationError):
        store.save([UploadedFile(f"{i}.pdf", b"x") for i in range(5)], folder="leases/1")


def test_store_remove_of_missing_file_raises(store):
    with pytest.raises(FileSystemError):
        store.remove(["leases/1/nope.pdf"])


def test_resolve_refuses_paths_outside_root(store):
    store.save([UploadedFile("a.pdf", b"a")], folder="leases/1")
    with pytest.raises(FileSystemError):
        store.resolve("../../etc/passwd")


def test_expense_totals():
    s = compute_expense(
        "50",
        [
            {"quantity": 3, "price_per_unit": 2.5, "total": 0},
            {"quantity": "bad", "price_per_unit": 10},
        ],
    )

    assert s.labor_cost == 50.0
    assert [line["total"] for line in s.equipment_cost] == [7.5, 0.0]
    assert s.total_expenses == 57.5
    assert s.as_document("parts + labour")["description"] == "parts + labour"
    assert "description" not in s.as_document()


def test_expense_without_equipment():
    s = compute_expense(None, None)
    assert s.total_expenses == 0.0
    assert s.equipment_cost == []


def test_expense_labor_plus_line_items():
    s = compute_expense(
        50,
        [
            {"quantity": 3, "price_per_unit": 10, "description": "pipe"},
            {"quantity": 1, "price_per_unit": 5, "description": "tape"},
        ],
    )

    assert [line["total"] for line in s.equipment_cost] == [30.0, 5.0]
    assert s.total_expenses == 85.0
