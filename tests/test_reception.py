"""
Tests for document reception and the background extraction pipeline.

Extraction runs on the worker pool; tests wait on the task handle before
inspecting the stored rows.
"""

import json
import os
import tempfile
from unittest.mock import patch

import pytest

from conftest import FakeLLMClient, invoice_json, make_pdf
from voucher_reception.models.document import ExtractionStatus
from voucher_reception.services.invoice_extraction import (
    LLM_FAILED_MESSAGE,
    NO_TEXT_MESSAGE,
)
from voucher_reception.services.worker_pool import ExtractionWorkerPool, TaskState


@pytest.fixture
def reception(container):
    return container.reception


def _ingest_and_wait(reception, tenant, content: bytes, mime_type="application/pdf", filename="invoice.pdf"):
    document = reception.save_document(
        file_data=content,
        filename=filename,
        mime_type=mime_type,
        sender_email="ap@example.com",
        tenant=tenant,
    )
    handle = reception.get_task(document.id)
    if handle is not None:
        handle.wait(timeout=10)
    return document


def test_pdf_extraction_completes_and_creates_voucher(reception, store, ledger, tenant, pdf_bytes, fake_llm):
    document = _ingest_and_wait(reception, tenant, pdf_bytes)

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.CONVERTED_TO_VOUCHER
    assert extraction.processing_errors is None
    assert extraction.extraction_date is not None
    assert json.loads(extraction.extraction_data)["type"] == "success"

    vouchers = ledger.list_vouchers(tenant.id)
    assert len(vouchers) == 1
    assert vouchers[0].ai_extraction_id == extraction.id
    assert sum(p.amount for p in vouchers[0].postings) == 0

    assert "INV-2025-0092" in fake_llm.calls[0]
    saved = store.get_document(document.id)
    assert saved.extraction_status == ExtractionStatus.CONVERTED_TO_VOUCHER
    assert saved.processing_error is None


def test_document_row_exists_before_extraction_finishes(reception, store, tenant, pdf_bytes):
    document = reception.save_document(pdf_bytes, "invoice.pdf", "application/pdf", "ap@example.com", tenant)

    assert store.get_document(document.id) is not None
    assert store.get_attachment(document.attachment_id).file_data == pdf_bytes
    reception.get_task(document.id).wait(timeout=10)


@pytest.mark.parametrize("mime_type,filename", [
    ("image/png", "receipt.png"),
    ("image/jpeg", "receipt.jpg"),
    ("application/octet-stream", "invoice.pdf"),
])
def test_non_pdf_files_are_never_extracted(reception, store, tenant, fake_llm, mime_type, filename):
    document = _ingest_and_wait(reception, tenant, b"\x89PNG...", mime_type=mime_type, filename=filename)

    assert reception.get_task(document.id) is None
    assert store.get_extraction_for_document(document.id) is None
    assert store.get_document(document.id).extraction_status is None
    assert fake_llm.calls == []


def test_pdf_without_text_fails_without_voucher(reception, store, ledger, tenant, fake_llm):
    document = _ingest_and_wait(reception, tenant, make_pdf(""))

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.FAILED
    assert extraction.processing_errors == NO_TEXT_MESSAGE
    assert ledger.list_vouchers() == []
    assert fake_llm.calls == []

    saved = store.get_document(document.id)
    assert saved.extraction_status == ExtractionStatus.FAILED
    assert saved.processing_error == NO_TEXT_MESSAGE


def test_invalid_categorization_is_corrected_before_voucher(reception, store, ledger, tenant, pdf_bytes, fake_llm):
    fake_llm.response = json.dumps(
        invoice_json(account="6999", vat_code="X", vat_percentage=25.0, description="Office chairs")
    )

    document = _ingest_and_wait(reception, tenant, pdf_bytes)

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.CONVERTED_TO_VOUCHER
    stored = json.loads(extraction.extraction_data)["data"]
    assert stored["invoice_details"]["vat_code"] == "1"
    assert stored["debit_prediction"]["account"] == "6540"

    debit = ledger.list_vouchers(tenant.id)[0].postings[0]
    assert debit.vat_code == "1"
    assert debit.account_number == "6540"


def test_voucher_failure_keeps_extraction_completed(reception, store, ledger, tenant, pdf_bytes, fake_llm):
    # Dates are not checked during extraction, only when building postings
    fake_llm.response = json.dumps(invoice_json(invoice_date="not-a-date"))

    document = _ingest_and_wait(reception, tenant, pdf_bytes)

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.COMPLETED
    assert extraction.processing_errors is None
    assert ledger.list_vouchers() == []
    assert store.get_document(document.id).extraction_status == ExtractionStatus.COMPLETED


def test_missing_api_key_records_failure(container, store, tenant, pdf_bytes):
    container.extraction_service.llm_client = FakeLLMClient(response=None)

    document = _ingest_and_wait(container.reception, tenant, pdf_bytes)

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.FAILED
    assert extraction.processing_errors == LLM_FAILED_MESSAGE


def test_malformed_llm_json_records_failure(reception, store, tenant, pdf_bytes, fake_llm):
    fake_llm.response = "```json\n{ this is not json\n```"

    document = _ingest_and_wait(reception, tenant, pdf_bytes)

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.FAILED
    assert extraction.processing_errors.startswith("Failed to parse LLM response")
    assert json.loads(extraction.extraction_data)["type"] == "error"


def test_unexpected_exception_becomes_failed_extraction(container, store, tenant, pdf_bytes):
    with patch.object(
        container.extraction_service, "extract_invoice_data", side_effect=RuntimeError("disk on fire")
    ):
        document = _ingest_and_wait(container.reception, tenant, pdf_bytes)

    handle = container.reception.get_task(document.id)
    assert handle.error is None  # the task itself did not raise

    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.FAILED
    assert extraction.processing_errors == "disk on fire"
    assert extraction.extraction_data == "{}"
    assert store.get_document(document.id).processing_error == "disk on fire"


def test_temp_file_removed_on_success_and_failure(container, tenant, pdf_bytes):
    seen_paths = []
    original = container.extraction_service.extract_invoice_data

    def spy(path):
        seen_paths.append(path)
        assert os.path.exists(path)
        return original(path)

    def failing(path):
        seen_paths.append(path)
        raise RuntimeError("boom")

    with patch.object(container.extraction_service, "extract_invoice_data", side_effect=spy):
        _ingest_and_wait(container.reception, tenant, pdf_bytes)
    with patch.object(container.extraction_service, "extract_invoice_data", side_effect=failing):
        _ingest_and_wait(container.reception, tenant, pdf_bytes)

    assert len(seen_paths) == 2
    for path in seen_paths:
        assert os.path.dirname(path) == tempfile.gettempdir()
        assert not os.path.exists(path)


def test_full_queue_keeps_document_and_records_failure(container, store, tenant, pdf_bytes):
    saturated = ExtractionWorkerPool(max_workers=1, max_queue=0)
    saturated._slots.acquire()
    container.reception.worker_pool = saturated

    try:
        document = container.reception.save_document(
            pdf_bytes, "invoice.pdf", "application/pdf", "ap@example.com", tenant
        )
    finally:
        saturated._slots.release()
        saturated.shutdown()

    assert store.get_document(document.id).extraction_status == ExtractionStatus.FAILED
    extraction = store.get_extraction_for_document(document.id)
    assert extraction.status == ExtractionStatus.FAILED
    assert extraction.processing_errors == "Extraction queue is full"


def test_one_extraction_per_document(reception, store, tenant, pdf_bytes):
    document = _ingest_and_wait(reception, tenant, pdf_bytes)
    first = store.get_extraction_for_document(document.id)

    reception.process_extraction(document.id)

    second = store.get_extraction_for_document(document.id)
    assert second.id != first.id
    assert store.get_extraction(first.id) is None


def test_task_lookup_stays_bounded(container, store, tenant, pdf_bytes):
    pool = ExtractionWorkerPool(max_workers=2, max_queue=20, history=2)
    container.reception.worker_pool = pool

    documents = [_ingest_and_wait(container.reception, tenant, pdf_bytes) for _ in range(10)]
    pool.shutdown(wait=True)

    assert len(pool._handles) == 2
    assert container.reception.get_task(documents[0].id) is None
    assert container.reception.get_task(documents[-1].id).state == TaskState.SUCCEEDED
    # Forgetting a task never touches what it stored
    assert all(
        store.get_extraction_for_document(d.id).status == ExtractionStatus.CONVERTED_TO_VOUCHER
        for d in documents
    )
