"""
Pytest configuration and shared fixtures.

Registers the integration marker (tests that call the real LLM API) and
provides in-memory collaborators, a fake LLM client and a tiny PDF builder.
"""

import json

import pytest
from fastapi.testclient import TestClient

from voucher_reception.api.deps import Container
from voucher_reception.api.main import app
from voucher_reception.services.ledger import InMemoryLedger
from voucher_reception.services.llm_client import LLMClient
from voucher_reception.services.storage import InMemoryDocumentStore
from voucher_reception.services.tenants import InMemoryTenantDirectory
from voucher_reception.services.worker_pool import ExtractionWorkerPool


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against the real LLM API"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a real LLM API key"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def _escape_pdf_text(line: str) -> str:
    return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(text: str = "") -> bytes:
    """Build a one-page PDF whose text layer holds the given lines"""
    ops = ["BT", "/F1 12 Tf", "72 720 Td"]
    for line in text.splitlines():
        ops.append(f"({_escape_pdf_text(line)}) Tj")
        ops.append("0 -16 Td")
    ops.append("ET")
    content = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


INVOICE_TEXT = """INVOICE
Example Supplies AS
Org.nr: 981 234 567 MVA
Invoice number: INV-2025-0092
Invoice date: 2025-07-15
Office chairs and desks
Total: NOK 12 500,50"""


def invoice_json(**overrides) -> dict:
    """A well-formed LLM answer; keyword overrides go into invoice_details"""
    account = overrides.pop("account", "6540")
    details = {
        "invoice_number": "INV-2025-0092",
        "invoice_date": "2025-07-15",
        "due_date": "2025-08-15",
        "KID_number": None,
        "account_number": "98765432101",
        "swift_bic": None,
        "company_name": "Example Supplies AS",
        "company_number": "981234567",
        "order_total": 12500.50,
        "currency": "NOK",
        "vat_percentage": 25.0,
        "vat_code": "1",
        "vat_amount": 2500.10,
        "description": "Office chairs and desks, July 2025",
        "project": None,
    }
    details.update(overrides)
    return {"debit_prediction": {"account": account}, "invoice_details": details}


class FakeLLMClient(LLMClient):
    """Returns canned responses and records the text it was asked about"""

    def __init__(self, response: str | None = None):
        super().__init__(api_key="test-key")
        self.response = response
        self.calls: list[str] = []

    def complete(self, text, context):
        self.calls.append(text)
        return self.response


@pytest.fixture
def pdf_bytes():
    return make_pdf(INVOICE_TEXT)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def tenants():
    directory = InMemoryTenantDirectory(["acme"])
    return directory


@pytest.fixture
def tenant(tenants):
    return tenants.find_tenant_by_slug("acme")


@pytest.fixture
def fake_llm():
    return FakeLLMClient(json.dumps(invoice_json()))


@pytest.fixture
def container(store, ledger, tenants, fake_llm):
    container = Container(
        store=store,
        ledger=ledger,
        tenants=tenants,
        llm_client=fake_llm,
        worker_pool=ExtractionWorkerPool(max_workers=2, max_queue=8),
    )
    yield container
    container.shutdown()


@pytest.fixture
def client(container):
    """TestClient wired to the test container"""
    original = app.state.container
    app.state.container = container
    try:
        yield TestClient(app)
    finally:
        app.state.container = original
