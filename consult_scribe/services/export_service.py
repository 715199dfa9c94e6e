"""
Transcript export encodings.

``to_json_form`` is the canonical round-trippable structure,
``to_flat_text_form`` the lossy "Speaker: line" scribe format.
"""

import json
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from consult_scribe.config import ExportFormat
from consult_scribe.core.logging import get_logger
from consult_scribe.models.transcript import Transcript, transcript_to_wire

logger = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_MAX_COMPONENT_LENGTH = 64


def to_json_form(transcript: Transcript) -> str:
    """Pretty-printed camelCase JSON of the whole object graph"""
    return json.dumps(transcript_to_wire(transcript), indent=2, ensure_ascii=False)


def to_flat_text_form(transcript: Transcript) -> str:
    """
    Scribe format: date and patient header, then one "Speaker: line" per
    entry, each followed by a blank line. Timestamps and mental status exam
    data are dropped.
    """
    lines = [
        f"Date: {transcript.consultation_date}",
        f"Patient ID: {transcript.patient_id}",
        "",
    ]
    for entry in transcript.transcript:
        lines.append(f"{entry.speaker}: {entry.line}")
        lines.append("")
    return "\n".join(lines)


def sanitize_filename_component(value: str) -> str:
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", value or "").strip("._")
    return cleaned[:_MAX_COMPONENT_LENGTH] or "UNKNOWN"


def export_filename(transcript: Transcript, extension: str) -> str:
    """<date>_<patientId>_transcript.<ext>"""
    date = sanitize_filename_component(transcript.consultation_date)
    patient_id = sanitize_filename_component(transcript.patient_id)
    return f"{date}_{patient_id}_transcript.{extension}"


def _expand_formats(formats: Union[ExportFormat, Iterable[ExportFormat]]) -> List[ExportFormat]:
    if isinstance(formats, ExportFormat):
        formats = [formats]
    expanded: List[ExportFormat] = []
    for fmt in formats:
        for item in ([ExportFormat.JSON, ExportFormat.TXT] if fmt == ExportFormat.BOTH else [fmt]):
            if item not in expanded:
                expanded.append(item)
    return expanded


def write_exports(
    transcript: Transcript,
    out_dir: Union[str, Path],
    formats: Union[ExportFormat, Iterable[ExportFormat]] = ExportFormat.BOTH,
    source: Optional[Path] = None,
) -> List[Path]:
    """
    Writes the requested encodings to out_dir and returns their paths.
    A target that resolves to source is skipped, so re-exporting a saved
    transcript never overwrites it.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    renderers = {
        ExportFormat.JSON: to_json_form,
        ExportFormat.TXT: to_flat_text_form,
    }

    written = []
    for fmt in _expand_formats(formats):
        path = out_dir / export_filename(transcript, fmt.value)
        if source is not None and path.resolve() == Path(source).resolve():
            logger.warning(f"Skipping {fmt.value} export, {path} is the source transcript")
            continue
        path.write_text(renderers[fmt](transcript), encoding="utf-8")
        logger.info(f"Wrote {fmt.value} export to {path}")
        written.append(path)
    return written
