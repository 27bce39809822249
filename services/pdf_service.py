# services/pdf_service.py
"""
Visa request letter rendering.

A fillable PDF template is read from disk once per process and kept as
immutable bytes. Every render opens a fresh document from those bytes, fills
the named form fields from a declarative binding table, flattens the form,
removes the interactive leftovers and writes the result to the generated-files
directory. An external optimizer (qpdf) may re-encode the file afterwards;
that step is best-effort and never fails a render.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Callable, Dict, Optional, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import DictionaryObject, NameObject, TextStringObject
from werkzeug.utils import secure_filename

from config import settings
from domain.models.application import Application
from domain.models.meeting import Meeting
from middleware.errors import PdfGenerationError, TemplateNotFoundError
from utils.dates import format_us_date
from utils.helpers import _as_str_or_empty, join_present

logger = logging.getLogger(__name__)

UNKNOWN_MEETING = "Unknown Meeting"
FONT_RESOURCE = "/Helv"
_MB = 1024 * 1024


@dataclass(frozen=True)
class PdfRenderConfig:
    """Immutable renderer configuration."""

    template_path: str
    output_dir: str
    normalize: bool = True
    normalizer_candidates: Tuple[str, ...] = ("qpdf",)
    normalizer_timeout: float = 30.0
    default_meeting_location: str = "Dallas, TX"
    font_size: float = 10.0

    @classmethod
    def from_settings(cls) -> "PdfRenderConfig":
        return cls(
            template_path=settings.PDF_TEMPLATE_PATH,
            output_dir=settings.GENERATED_PDF_DIR,
            normalize=settings.PDF_NORMALIZE,
            normalizer_candidates=tuple(settings.PDF_NORMALIZER_CANDIDATES),
            normalizer_timeout=settings.PDF_NORMALIZER_TIMEOUT,
            default_meeting_location=settings.DEFAULT_MEETING_LOCATION,
        )


@dataclass(frozen=True)
class RenderedPdf:
    filename: str
    path: str
    size: int
    size_analysis: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "path": self.path,
            "size": self.size,
            "sizeAnalysis": dict(self.size_analysis),
        }


# ============================
# Template cache
# ============================

class TemplateCache:
    """Process-wide template bytes, loaded at most once per path."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, bytes] = {}

    def get(self, path: str) -> bytes:
        data = self._entries.get(path)
        if data is not None:
            return data
        with self._lock:
            data = self._entries.get(path)
            if data is None:
                data = _read_template(path)
                self._entries[path] = data
        return data

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _read_template(path: str) -> bytes:
    if not os.path.isfile(path):
        directory = os.path.dirname(path)
        try:
            available = sorted(os.listdir(directory))
        except OSError:
            available = []
        raise TemplateNotFoundError(
            f"Template file not found at: {path}",
            details={"directory": directory, "available": available},
        )
    with open(path, "rb") as fh:
        data = fh.read()
    logger.info("PDF template loaded from %s (%d bytes)", path, len(data))
    return data


template_cache = TemplateCache()


# ============================
# Field bindings
# ============================

@dataclass(frozen=True)
class LetterContext:
    """Everything a field extractor may read."""

    application: Application
    meeting: Optional[Meeting]
    default_location: str
    today: date


def _meeting_name(ctx: LetterContext) -> str:
    return (ctx.meeting.name if ctx.meeting else "") or UNKNOWN_MEETING


def _meeting_dates(meeting: Optional[Meeting]) -> str:
    if not meeting or not meeting.start_date or not meeting.end_date:
        return ""
    return f"{format_us_date(meeting.start_date)} - {format_us_date(meeting.end_date)}"


def _meeting_information(ctx: LetterContext) -> str:
    location = (ctx.meeting.location if ctx.meeting else "") or ctx.default_location
    text = f"{_meeting_name(ctx)}, held in {location}"
    dates = _meeting_dates(ctx.meeting)
    return f"{text} on {dates}" if dates else text


def _full_name(ctx: LetterContext) -> str:
    name = ctx.application.full_name
    return f"{name}," if name else ""


FieldExtractor = Callable[[LetterContext], object]

# Template field name -> value. Adding a field to the letter is a new entry here.
FIELD_BINDINGS: Dict[str, FieldExtractor] = {
    "first_name": lambda c: c.application.first_name,
    "last_name": lambda c: c.application.last_name,
    "full_name": _full_name,
    "applicant_email": lambda c: c.application.email,
    "birth_date_af_date": lambda c: format_us_date(c.application.birthdate),
    "passport_information": lambda c: join_present(
        [
            c.application.passport_number,
            c.application.passport_issuing_country,
            format_us_date(c.application.passport_expiration_date),
        ],
        " / ",
    ),
    "gender": lambda c: c.application.gender.value if c.application.gender else "",
    "company_name": lambda c: c.application.company_name,
    "position": lambda c: c.application.position,
    "mailing_address": lambda c: join_present(
        [c.application.company_mailing_address1, c.application.company_mailing_address2],
        ", ",
    ),
    "city": lambda c: c.application.city,
    "postal_code": lambda c: c.application.postal_code,
    "country": lambda c: c.application.country,
    "phone": lambda c: c.application.phone,
    "fax": lambda c: c.application.fax,
    "travel_dates_af_date": lambda c: join_present(
        [
            format_us_date(c.application.date_of_arrival),
            format_us_date(c.application.date_of_departure),
        ],
        " / ",
    ),
    "meeting_name": _meeting_name,
    "meeting_information": _meeting_information,
    "hotel_name": lambda c: c.application.hotel_name,
    "hotel_confirmation_number": lambda c: c.application.hotel_confirmation,
    "todays_date_af_date": lambda c: format_us_date(c.today),
}


def build_field_values(ctx: LetterContext) -> Dict[str, str]:
    """Evaluate every binding; a failing extractor leaves its field blank."""
    values: Dict[str, str] = {}
    for name, extract in FIELD_BINDINGS.items():
        try:
            values[name] = _as_str_or_empty(extract(ctx))
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Could not compute field '%s': %s", name, exc)
            values[name] = ""
    return values


# ============================
# Document steps
# ============================

def _open_document(template_bytes: bytes) -> PdfWriter:
    try:
        reader = PdfReader(BytesIO(template_bytes))
        return PdfWriter(clone_from=reader)
    except (PyPdfError, ValueError, KeyError, OSError) as exc:
        raise PdfGenerationError(f"Failed to parse PDF template: {exc}") from exc


def _text_fields(writer: PdfWriter) -> Dict[str, dict]:
    fields = writer.get_fields() or {}
    return {name: f for name, f in fields.items() if f.get("/FT") == "/Tx"}


def _apply_standard_font(writer: PdfWriter, font_size: float) -> None:
    """Point every widget at the standard Helvetica font before appearances are built."""
    acroform = writer.root_object.get("/AcroForm")
    if acroform is None:
        return
    acroform = acroform.get_object()

    resources = acroform.get("/DR")
    if resources is None:
        resources = DictionaryObject()
        acroform[NameObject("/DR")] = resources
    resources = resources.get_object()
    fonts = resources.get("/Font")
    if fonts is None:
        fonts = DictionaryObject()
        resources[NameObject("/Font")] = fonts
    fonts = fonts.get_object()
    fonts[NameObject(FONT_RESOURCE)] = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
            NameObject("/Encoding"): NameObject("/WinAnsiEncoding"),
        }
    )

    appearance = TextStringObject(f"{FONT_RESOURCE} {font_size:g} Tf 0 g")
    acroform[NameObject("/DA")] = appearance
    for page in writer.pages:
        annots = page.get("/Annots")
        for annot in annots.get_object() if annots is not None else []:
            widget = annot.get_object()
            if widget.get("/Subtype") != "/Widget":
                continue
            widget[NameObject("/DA")] = appearance
            parent = widget.get("/Parent")
            if parent is not None:
                parent.get_object()[NameObject("/DA")] = appearance


def _fill_and_flatten(writer: PdfWriter, values: Dict[str, str]) -> Tuple[int, int]:
    """
    Write each text field's value and bake its appearance into the page.
    Returns (fields set, fields skipped).
    """
    text_fields = _text_fields(writer)

    for name in values:
        if name not in text_fields:
            logger.info("Field '%s' not found in PDF form", name)

    # Template fields without a binding keep their current value but are
    # flattened too, so no interactive field survives.
    to_write: Dict[str, str] = {
        name: _as_str_or_empty(spec.get("/V")) for name, spec in text_fields.items()
    }
    to_write.update({name: value for name, value in values.items() if name in text_fields})

    written = skipped = 0
    for name, value in to_write.items():
        try:
            for page in writer.pages:
                writer.update_page_form_field_values(
                    page, {name: value}, auto_regenerate=False, flatten=True
                )
            written += 1
        except (PyPdfError, KeyError, TypeError, ValueError, AttributeError) as exc:
            skipped += 1
            logger.warning("Could not set field '%s': %s", name, exc)
    return written, skipped


def _strip_interactive_form(writer: PdfWriter) -> None:
    """Drop the AcroForm and every page's annotations; failures are tolerated."""
    try:
        root = writer.root_object
        if "/AcroForm" in root:
            del root[NameObject("/AcroForm")]
        for page in writer.pages:
            if "/Annots" in page:
                del page[NameObject("/Annots")]
    except Exception as exc:  # pragma: no cover - depends on malformed templates
        logger.warning("Annotation cleanup failed, continuing: %s", exc)


def _serialize(writer: PdfWriter) -> bytes:
    # pypdf writes a classic cross-reference table (no object streams).
    for page in writer.pages:
        try:
            page.compress_content_streams()
        except (PyPdfError, ValueError) as exc:
            logger.warning("Could not compress page content: %s", exc)
    buffer = BytesIO()
    try:
        writer.write(buffer)
    except (PyPdfError, ValueError, TypeError, OSError) as exc:
        raise PdfGenerationError(f"Failed to serialize PDF: {exc}") from exc
    return buffer.getvalue()


# ============================
# External normalization
# ============================

def normalize_with_external_tool(
    path: str, candidates: Tuple[str, ...], timeout: float
) -> bool:
    """
    Re-encode ``path`` in place with the first working qpdf-compatible
    executable from ``candidates``. Returns True when the file was replaced.
    Never raises.
    """
    for candidate in candidates:
        executable = shutil.which(candidate)
        if not executable:
            continue

        tmp_path = f"{path}.normalized"
        cmd = [
            executable,
            "--object-streams=disable",
            "--compress-streams=y",
            path,
            tmp_path,
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.info("PDF normalizer %s failed: %s", candidate, exc)
            _remove_quietly(tmp_path)
            continue

        # qpdf exits with 3 when it succeeded with warnings.
        if result.returncode in (0, 3) and os.path.isfile(tmp_path) and os.path.getsize(tmp_path) > 0:
            try:
                os.replace(tmp_path, path)
            except OSError as exc:
                logger.info("Could not replace PDF with normalized copy: %s", exc)
                _remove_quietly(tmp_path)
                continue
            logger.info("PDF normalized with %s", candidate)
            return True

        logger.info(
            "PDF normalizer %s exited with %s: %s",
            candidate,
            result.returncode,
            (result.stderr or b"").decode("utf-8", "replace").strip(),
        )
        _remove_quietly(tmp_path)

    return False


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove %s: %s", path, exc)


# ============================
# Public API
# ============================

def letter_filename(application: Application) -> str:
    first = _as_str_or_empty(application.first_name) or "Unknown"
    last = _as_str_or_empty(application.last_name) or "Unknown"
    return f"visa-request-letter-{first}-{last}.pdf"


def analyze_size(original_size: int, final_size: int) -> Dict[str, str]:
    ratio = ((original_size - final_size) / original_size * 100) if original_size else 0.0
    analysis = {
        "originalSizeMB": f"{original_size / _MB:.2f}",
        "optimizedSizeMB": f"{final_size / _MB:.2f}",
        "compressionRatio": f"{ratio:.1f}",
    }
    logger.info(
        "PDF size: template %s MB, output %s MB (%s%% reduction)",
        analysis["originalSizeMB"],
        analysis["optimizedSizeMB"],
        analysis["compressionRatio"],
    )
    return analysis


def render_visa_letter(
    application: Application,
    meeting: Optional[Meeting],
    *,
    config: Optional[PdfRenderConfig] = None,
    cache: Optional[TemplateCache] = None,
    today: Optional[date] = None,
) -> RenderedPdf:
    """Fill, flatten and save the visa request letter for ``application``."""

    config = config or PdfRenderConfig.from_settings()
    cache = cache or template_cache

    template_bytes = cache.get(config.template_path)
    writer = _open_document(template_bytes)

    ctx = LetterContext(
        application=application,
        meeting=meeting,
        default_location=config.default_meeting_location,
        today=today or datetime.now().date(),
    )
    values = build_field_values(ctx)

    try:
        _apply_standard_font(writer, config.font_size)
    except (PyPdfError, KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Could not apply standard font to form fields: %s", exc)

    written, skipped = _fill_and_flatten(writer, values)
    logger.info("Letter fields written=%d skipped=%d for application %s", written, skipped, application.id)

    _strip_interactive_form(writer)
    pdf_bytes = _serialize(writer)

    filename = letter_filename(application)
    os.makedirs(config.output_dir, exist_ok=True)
    path = os.path.join(
        config.output_dir, f"{uuid.uuid4().hex}-{secure_filename(filename) or 'letter.pdf'}"
    )
    try:
        with open(path, "wb") as fh:
            fh.write(pdf_bytes)
    except OSError as exc:
        _remove_quietly(path)
        raise PdfGenerationError(f"Failed to write PDF: {exc}") from exc

    if config.normalize:
        normalize_with_external_tool(path, config.normalizer_candidates, config.normalizer_timeout)

    size = os.path.getsize(path)
    return RenderedPdf(
        filename=filename,
        path=path,
        size=size,
        size_analysis=analyze_size(len(template_bytes), size),
    )
