#!/usr/bin/env python3
"""
terms_converter.py - Convert terms-and-conditions documents into a clean
HTML fragment wrapped in <div class="termsInner">.

Supports DOCX, legacy DOC and PDF. The structuring itself is done by the
LLM; this script picks an extraction path per file type, builds the
request, and cleans up the reply.

USAGE
-----
1) Install dependencies (Python 3.10+):
   pip install -e .

2) Set your API key **securely** (do NOT hardcode keys in code):
   # macOS / Linux
   export OPENAI_API_KEY="sk-..."
   # or put it in a .env file next to where you run the tool

3) Run:
   python terms_converter.py --input ./terms.docx --output ./out

   # Convert a whole folder, 3 files at a time, with preview pages
   python terms_converter.py --input ./in --output ./out --workers 3 --preview
"""

from __future__ import annotations

import argparse
import base64
import concurrent.futures as futures
import html as html_lib
import io
import logging
import os
import re
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

# Third-party
import mammoth
import openai
import pdfplumber
from docx import Document as DocxDocument
from dotenv import load_dotenv
from openai import OpenAI
from tqdm import tqdm


DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.1

CONTAINER_CLASS = "termsInner"
ALLOWED_TAGS = frozenset({
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "ul", "ol", "li",
    "table", "thead", "tbody", "tr", "th", "td",
})

SUPPORTED_EXTENSIONS = (".docx", ".pdf", ".doc")

SYSTEM_INSTRUCTION = """
You are a professional document-to-HTML conversion expert specializing in legal terms and conditions.
Your task is to take the provided document (text, DOCX extraction, or PDF file) and convert it into high-quality, structured HTML.

Rules:
1. WRAP everything inside a single <div class="termsInner"> tag.
2. DO NOT include <html>, <head>, or <body> tags.
3. USE ONLY these tags: h1, h2, h3, h4, h5, h6, p, ul, ol, li, table, thead, tbody, tr, th, td.
4. PRESERVE THE EXACT WORDING. Do not summarize, skip, or modify any text.
5. PRESERVE THE STRUCTURE. If the text looks like a heading, use h1-h6. If it's a list, use ul/ol.
6. RETURN ONLY THE HTML CODE. No conversational text or markdown blocks.
7. If the input contains a table structure, ensure it is represented as a <table>.
8. For PDF files, read the content carefully and transcribe it exactly.
"""

UNSUPPORTED_MESSAGE = "Unsupported file type. .docx or .pdf files are recommended."
EMPTY_EXTRACTION_MESSAGE = "Could not extract text from the file. Please try a .docx or PDF file."
GENERIC_FAILURE_MESSAGE = "An error occurred while converting the document. Please check the file format."


# --------------------------- Logging ----------------------------------

def setup_logging(out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    log_path = out_dir / "processing.log"
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.info("Logging initialized. Log file: %s", log_path)


# --------------------------- Errors ------------------------------------

class ConversionError(Exception):
    """Conversion failure; the message is meant to be shown to the user."""


class UnsupportedFileTypeError(ConversionError):
    pass


class ExtractionError(ConversionError):
    pass


class LLMError(ConversionError):
    pass


# --------------------------- Data types --------------------------------

class FileKind(str, Enum):
    DOCX = "docx"
    DOC = "doc"
    PDF = "pdf"


@dataclass
class UploadedDocument:
    """An uploaded file: its name (used for dispatch) and raw bytes."""
    name: str
    data: bytes

    @classmethod
    def from_path(cls, path: Path) -> "UploadedDocument":
        return cls(name=path.name, data=path.read_bytes())


@dataclass
class ExtractedContent:
    """What goes into the request: text for DOCX/DOC, raw bytes for PDF."""
    kind: FileKind
    file_name: str
    text: Optional[str] = None
    data: Optional[bytes] = None
    meta: Dict[str, str] = field(default_factory=dict)


@dataclass
class ConversionResult:
    html: str
    original_file_name: str


# --------------------------- Dispatch ----------------------------------

def detect_file_kind(filename: str) -> FileKind:
    name = filename.lower()
    if name.endswith(".docx"):
        return FileKind.DOCX
    if name.endswith(".pdf"):
        return FileKind.PDF
    if name.endswith(".doc"):
        return FileKind.DOC
    raise UnsupportedFileTypeError(UNSUPPORTED_MESSAGE)


def is_supported_file(filename: str) -> bool:
    return filename.lower().endswith(SUPPORTED_EXTENSIONS)


def find_input_files(input_path: Path) -> List[Path]:
    if input_path.is_file():
        return [input_path]
    files = []
    for p in input_path.rglob("*"):
        if p.is_file() and is_supported_file(p.name):
            files.append(p)
    return sorted(files)


# --------------------------- Extraction --------------------------------

# Printable ASCII, Hangul syllables, Hangul Jamo, Hangul compatibility Jamo, whitespace.
# Whitespace is spelled out: "\s" on str patterns also keeps the \x1c-\x1f separators and \x85.
_LEGACY_JUNK = re.compile(
    r"[^\x20-\x7E\uAC00-\uD7AF\u1100-\u11FF\u3130-\u318F"
    r"\t\n\v\f\r\u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]"
)


def clean_legacy_text(text: str) -> str:
    """Strip binary junk from a legacy .doc file read as text."""
    return _LEGACY_JUNK.sub("", text)


def read_docx_properties(data: bytes) -> Dict[str, str]:
    try:
        props = DocxDocument(io.BytesIO(data)).core_properties
    except Exception as e:
        logging.warning("Could not read DOCX properties: %s", e)
        return {}
    return {
        "title": props.title or "",
        "created": (props.created.isoformat() if props.created else ""),
        "modified": (props.modified.isoformat() if props.modified else ""),
    }


def extract_from_docx(name: str, data: bytes) -> ExtractedContent:
    """Convert DOCX to HTML with mammoth; the model restructures it afterwards."""
    try:
        result = mammoth.convert_to_html(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(f"Could not read DOCX file {name}: {e}") from e
    for message in result.messages:
        logging.warning("[%s] mammoth: %s", name, message)
    if not result.value.strip():
        logging.warning("[%s] DOCX conversion produced no content", name)
    return ExtractedContent(
        kind=FileKind.DOCX, file_name=name, text=result.value,
        meta=read_docx_properties(data),
    )


def extract_from_doc(name: str, data: bytes) -> ExtractedContent:
    text = clean_legacy_text(data.decode("utf-8", errors="replace"))
    if not text.strip():
        raise ExtractionError(EMPTY_EXTRACTION_MESSAGE)
    return ExtractedContent(kind=FileKind.DOC, file_name=name, text=text)


def count_pdf_pages(data: bytes) -> Optional[int]:
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            return len(pdf.pages)
    except Exception as e:
        logging.warning("pdfplumber could not open PDF, sending it as-is: %s", e)
        return None


def extract_from_pdf(name: str, data: bytes) -> ExtractedContent:
    """PDFs go to the model untouched; pdfplumber is only used for the page count."""
    meta = {}
    pages = count_pdf_pages(data)
    if pages is not None:
        meta["pages"] = str(pages)
    return ExtractedContent(kind=FileKind.PDF, file_name=name, data=data, meta=meta)


EXTRACTORS = {
    FileKind.DOCX: extract_from_docx,
    FileKind.DOC: extract_from_doc,
    FileKind.PDF: extract_from_pdf,
}


def extract_content(document: UploadedDocument) -> ExtractedContent:
    kind = detect_file_kind(document.name)
    return EXTRACTORS[kind](document.name, document.data)


# --------------------------- Prompts -----------------------------------

def build_user_prompt(content: ExtractedContent) -> str:
    if content.kind is FileKind.DOCX:
        return (
            "Below is content extracted from a DOCX legal document. Please convert it into clean HTML "
            f'inside <div class="{CONTAINER_CLASS}">. Literal transcription only.\n\n'
            f"CONTENT:\n{content.text}"
        )
    if content.kind is FileKind.DOC:
        return (
            "Below is content extracted from a legacy .doc file. Please extract the legible legal clauses "
            f'and convert them into clean HTML inside <div class="{CONTAINER_CLASS}">. Literal transcription only.\n\n'
            f"EXTRACTED CONTENT:\n{content.text}"
        )
    return (
        f'Please convert this PDF legal document into clean HTML inside <div class="{CONTAINER_CLASS}">. '
        "Remember: literal transcription of all clauses, preserve structure with h1-h6, p, ul, ol, and table tags."
    )


def pdf_file_part(content: ExtractedContent) -> Dict:
    encoded = base64.b64encode(content.data or b"").decode("ascii")
    return {
        "type": "file",
        "file": {
            "filename": content.file_name,
            "file_data": f"data:application/pdf;base64,{encoded}",
        },
    }


def build_messages(content: ExtractedContent) -> List[Dict]:
    user_prompt = build_user_prompt(content)
    if content.kind is FileKind.PDF:
        user_content = [pdf_file_part(content), {"type": "text", "text": user_prompt}]
    else:
        user_content = user_prompt
    return [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": user_content},
    ]


# --------------------------- LLM Calls ---------------------------------

RETRYABLE_ERRORS = (
    openai.APIConnectionError,  # includes APITimeoutError
    openai.RateLimitError,
    openai.InternalServerError,
)


class LLMClient:
    """
    Thin wrapper over the OpenAI Python SDK.
    Uses Chat Completions, which accepts inline PDF file parts.
    """
    def __init__(self, model: str = DEFAULT_MODEL, temperature: float = DEFAULT_TEMPERATURE,
                 max_tokens: int = 16000, attempts: int = 6, retry_delay: float = 2.0,
                 client: Optional[OpenAI] = None):
        self.client = client or OpenAI()  # reads OPENAI_API_KEY from env
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.attempts = attempts
        self.retry_delay = retry_delay

    def transcribe(self, messages: List[Dict]) -> str:
        delay = self.retry_delay
        last_error: Optional[Exception] = None
        for attempt in range(self.attempts):
            try:
                resp = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                )
            except RETRYABLE_ERRORS as e:
                last_error = e
                logging.warning("LLM call failed (attempt %d): %s", attempt + 1, e)
                if attempt + 1 < self.attempts:
                    time.sleep(delay)
                    delay = min(delay * 2, 30)
                continue
            if not resp.choices:
                return ""
            return resp.choices[0].message.content or ""
        raise LLMError(f"LLM call failed after {self.attempts} attempts: {last_error}") from last_error


# --------------------------- Post-processing ---------------------------

_TAG_RE = re.compile(r"<\s*/?\s*([a-zA-Z][a-zA-Z0-9]*)")
_WRAPPER_RE = re.compile(r"^<div\s+class=[\"']%s[\"']\s*>" % CONTAINER_CLASS)


def strip_code_fences(text: str) -> str:
    return text.replace("```html", "").replace("```", "").strip()


def quality_check(html: str) -> List[str]:
    """
    Return warnings for output that breaks the transcription contract.
    Nothing is rewritten; the caller decides what to do with them.
    """
    if not html.strip():
        return ["Empty output."]
    warnings = []
    if not _WRAPPER_RE.match(html) or not html.endswith("</div>"):
        warnings.append(f'Output is not wrapped in <div class="{CONTAINER_CLASS}">.')
    # The single container div is the one tag allowed beyond the whitelist.
    stray = sorted({t.lower() for t in _TAG_RE.findall(html)} - ALLOWED_TAGS - {"div"})
    if stray:
        warnings.append("Output uses tags outside the whitelist: " + ", ".join(stray))
    if len(re.findall(r"<\s*div\b", html, re.I)) > 1:
        warnings.append("Output contains more than one <div>.")
    bad_markers = ["As an AI", "I cannot", "I'm unable", "cannot access"]
    if any(bm.lower() in html.lower() for bm in bad_markers):
        warnings.append("Output contains likely disclaimer or placeholder.")
    return warnings


# --------------------------- Conversion --------------------------------

def convert_document(document: UploadedDocument, llm: LLMClient) -> ConversionResult:
    try:
        content = extract_content(document)
        logging.info("Extracted %s as %s %s", document.name, content.kind.value, content.meta or "")
        reply = llm.transcribe(build_messages(content))
        html = strip_code_fences(reply)
    except ConversionError as e:
        logging.error("Conversion error for %s: %s", document.name, e)
        raise
    except Exception as e:
        logging.exception("Conversion error for %s", document.name)
        raise ConversionError(str(e) or GENERIC_FAILURE_MESSAGE) from e

    for warn in quality_check(html):
        logging.warning("[%s] %s", document.name, warn)
    return ConversionResult(html=html, original_file_name=document.name)


# --------------------------- Writers -----------------------------------

PREVIEW_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
</head>
<body>
{fragment}
</body>
</html>
"""


def write_fragment(path: Path, html: str) -> None:
    path.write_text(html + "\n", encoding="utf-8")


def write_preview_page(path: Path, result: ConversionResult) -> None:
    page = PREVIEW_TEMPLATE.format(
        title=html_lib.escape(result.original_file_name), fragment=result.html,
    )
    path.write_text(page, encoding="utf-8")


# --------------------------- Processing --------------------------------

def process_single_file(path: Path, args) -> Path:
    out_dir = Path(args.output).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    llm = LLMClient(model=args.model, temperature=args.temperature)
    result = convert_document(UploadedDocument.from_path(path), llm)

    out_path = out_dir / f"{path.stem}.html"
    write_fragment(out_path, result.html)
    if args.preview:
        write_preview_page(out_dir / f"{path.stem}.preview.html", result)
    return out_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Terms and conditions converter: DOCX/DOC/PDF to termsInner HTML")
    parser.add_argument("--input", required=True, help="A DOCX/DOC/PDF file, or a folder containing them")
    parser.add_argument("--output", required=True, help="Folder to write outputs")
    parser.add_argument("--model", default=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
                        help="LLM model name (e.g., gpt-4o-mini)")
    parser.add_argument("--temperature", type=float, default=DEFAULT_TEMPERATURE)
    parser.add_argument("--workers", type=int, default=1, help="Parallel workers across files")
    parser.add_argument("--preview", action="store_true", help="Also write a standalone preview page per file")
    args = parser.parse_args(argv)

    input_path = Path(args.input).resolve()
    if not input_path.exists():
        print(f"Input not found: {input_path}", file=sys.stderr)
        return 2

    setup_logging(Path(args.output))

    if not os.getenv("OPENAI_API_KEY"):
        logging.error("OPENAI_API_KEY is not set. Please export it before running.")
        return 3

    if input_path.is_file() and not is_supported_file(input_path.name):
        logging.error("Failed processing %s: %s", input_path, UNSUPPORTED_MESSAGE)
        return 1

    files = find_input_files(input_path)
    if not files:
        logging.warning("No input files found in %s", input_path)
        return 0

    logging.info("Discovered %d file(s). Starting processing...", len(files))

    failed = 0
    if args.workers > 1:
        with futures.ThreadPoolExecutor(max_workers=args.workers) as ex:
            fut_to_path = {ex.submit(process_single_file, p, args): p for p in files}
            for fut in futures.as_completed(fut_to_path):
                p = fut_to_path[fut]
                try:
                    out_path = fut.result()
                    logging.info("Completed %s -> %s", p.name, out_path)
                except ConversionError as e:
                    failed += 1
                    logging.error("Failed processing %s: %s", p, e)
                except Exception as e:
                    failed += 1
                    logging.exception("Failed processing %s: %s", p, e)
    else:
        for p in tqdm(files, desc="Converting"):
            try:
                out_path = process_single_file(p, args)
                logging.info("Completed %s -> %s", p.name, out_path)
            except ConversionError as e:
                failed += 1
                logging.error("Failed processing %s: %s", p, e)
            except Exception as e:
                failed += 1
                logging.exception("Failed processing %s: %s", p, e)

    logging.info("All done. %d of %d converted. Outputs in: %s",
                 len(files) - failed, len(files), Path(args.output).resolve())
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
