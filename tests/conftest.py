"""
Pytest configuration and fixtures.
"""

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from medsimplify.api.middleware import limiter
from medsimplify.config import Settings
from medsimplify.core.llm_engine import TextGenerator
from medsimplify.main import create_app


SAMPLE_REPLY = """## What this report says
Your hemoglobin is a little low.
## What the results mean
Hemoglobin carries oxygen in your blood. 10.2 g/dL is below the usual range.
## What to do next
1. Talk to your doctor about these results."""


class FakeTextGenerator(TextGenerator):
    """Records every call and replies with a canned text or raises."""

    provider = "fake"

    def __init__(self, reply: str = SAMPLE_REPLY, error: Optional[Exception] = None):
        super().__init__(api_key="test-key", model="fake-model")
        self.reply = reply
        self.error = error
        self.calls = []

    async def _complete(self, system, user, temperature, max_tokens):
        self.calls.append({
            "system": system,
            "user": user,
            "temperature": temperature,
            "max_tokens": max_tokens
        })
        if self.error:
            raise self.error
        return self.reply


def make_pdf(lines) -> bytes:
    """Build a minimal single-page PDF with one text line per entry."""
    content = ["BT", "/F1 12 Tf", "14 TL", "72 720 Td"]
    content += [f"({line}) Tj T*" for line in lines]
    content.append("ET")
    stream = "\n".join(content).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
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
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with an empty rate-limit window."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        static_dir=str(tmp_path / "public"),
        max_upload_bytes=64 * 1024,
        max_json_body_bytes=4096,
        openai_api_key="test-key"
    )


@pytest.fixture
def generator():
    """Fake text generator that succeeds."""
    return FakeTextGenerator()


@pytest.fixture
def app(settings, generator):
    """Application wired with the fake generator."""
    return create_app(settings=settings, text_generator=generator)


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)
