"""
Test Configuration and Fixtures
"""
import io
from types import SimpleNamespace

import pytest
from docx import Document


class FakeLLM:
    """Stands in for LLMClient; records the messages it was sent."""

    def __init__(self, reply='<div class="termsInner"><p>ok</p></div>'):
        self.reply = reply
        self.calls = []

    def transcribe(self, messages):
        self.calls.append(messages)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


class FakeCompletions:
    """Mimics client.chat.completions; each queued item is a reply or an exception."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(*outcomes):
    completions = FakeCompletions(outcomes)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def docx_bytes():
    """A small terms document built with python-docx."""
    doc = Document()
    doc.core_properties.title = "Service Terms"
    doc.add_heading("Terms of Service", level=1)
    doc.add_heading("Article 1 (Purpose)", level=2)
    doc.add_paragraph("These terms govern the use of the service.")
    doc.add_paragraph("Users must be 14 or older.", style="List Bullet")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Plan"
    table.cell(0, 1).text = "Fee"
    table.cell(1, 0).text = "Basic"
    table.cell(1, 1).text = "Free"
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def legacy_doc_bytes():
    """Readable clauses buried in binary noise, like a .doc read as text."""
    return (
        b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1\x00\x00"
        + "Article 1 (Purpose)\n제1조 목적\n".encode("utf-8")
        + b"\x00\x01\x02\xff\xfe"
        + b"These terms govern the service.\n"
    )
