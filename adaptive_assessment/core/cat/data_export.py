"""
Tabular export of session responses for external statistical analysis.

Produces one row per answered item with the ability estimate before and
after the response, in CSV or JSONL, together with metadata describing each
column and its valid numeric range. The output feeds tools such as R or SPSS
for independent re-analysis and item recalibration.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, TypedDict

from adaptive_assessment.core.cat.item_bank import ItemBank
from adaptive_assessment.core.cat.session import THETA_MAX, THETA_MIN, AdaptiveSession
from adaptive_assessment.core.exceptions import DataExportError

logger = logging.getLogger(__name__)

VALID_FORMATS = ("csv", "jsonl")

EXPORT_COLUMNS = [
    "session_id",
    "respondent_id",
    "item_id",
    "category",
    "response",
    "difficulty",
    "discrimination",
    "time_spent",
    "theta_before",
    "theta_after",
    "standard_error",
    "timestamp",
]

COLUMN_DESCRIPTIONS: Dict[str, str] = {
    "session_id": "Unique identifier of the assessment session",
    "respondent_id": "Unique identifier of the respondent",
    "item_id": "Unique identifier of the item",
    "category": "Item category (valencia, ativacao, concentracao, motivacao)",
    "response": "Numeric response on the item's scale",
    "difficulty": "Item difficulty parameter b (IRT)",
    "discrimination": "Item discrimination parameter a (IRT)",
    "time_spent": "Time taken to answer (seconds)",
    "theta_before": "Ability estimate before the response",
    "theta_after": "Ability estimate after the response",
    "standard_error": "Standard error of the ability estimate after the response",
    "timestamp": "Moment of the response (ISO 8601)",
}

# Category reported for responses whose item is no longer in the bank
UNKNOWN_CATEGORY = "unknown"


class ResponseExportRow(TypedDict):
    """One exported response."""

    session_id: str
    respondent_id: str
    item_id: str
    category: str
    response: float
    difficulty: float
    discrimination: Optional[float]
    time_spent: float
    theta_before: float
    theta_after: float
    standard_error: float
    timestamp: str


@dataclass
class ExportMetadata:
    """Column names, descriptions and valid numeric ranges."""

    variables: List[str]
    descriptions: Dict[str, str]
    scales: Dict[str, Tuple[float, float]] = field(default_factory=dict)


@dataclass
class StatisticalExport:
    """Serialized rows plus their metadata."""

    content: str
    metadata: ExportMetadata
    row_count: int


def build_export_rows(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
) -> List[ResponseExportRow]:
    """
    Flatten sessions into one row per response.

    theta_before is the session's starting theta for the first response and
    the previous estimate afterwards; theta_after and standard_error are the
    estimates recorded right after the response.
    """
    rows: List[ResponseExportRow] = []
    for session in sessions:
        for index, record in enumerate(session.responses):
            item = item_bank.get(record.item_id)
            theta_before = (
                session.initial_theta if index == 0 else session.theta_history[index - 1]
            )
            rows.append(
                {
                    "session_id": session.session_id,
                    "respondent_id": session.respondent_id,
                    "item_id": record.item_id,
                    "category": item.category.value if item else UNKNOWN_CATEGORY,
                    "response": record.response,
                    "difficulty": record.difficulty,
                    "discrimination": item.discrimination if item else None,
                    "time_spent": record.time_spent,
                    "theta_before": theta_before,
                    "theta_after": session.theta_history[index],
                    "standard_error": session.se_history[index],
                    "timestamp": record.timestamp.isoformat(),
                }
            )
    return rows


def _build_metadata(
    rows: Sequence[ResponseExportRow],
    item_bank: ItemBank,
) -> ExportMetadata:
    scales: Dict[str, Tuple[float, float]] = {
        "theta_before": (THETA_MIN, THETA_MAX),
        "theta_after": (THETA_MIN, THETA_MAX),
    }

    items = list(item_bank)
    if items:
        scales["response"] = (
            min(item.scale_min for item in items),
            max(item.scale_max for item in items),
        )
        scales["difficulty"] = (
            min(item.difficulty for item in items),
            max(item.difficulty for item in items),
        )
        scales["discrimination"] = (
            min(item.discrimination for item in items),
            max(item.discrimination for item in items),
        )

    max_se = max((row["standard_error"] for row in rows), default=1.0)
    scales["standard_error"] = (0.0, max(1.0, max_se))

    return ExportMetadata(
        variables=list(EXPORT_COLUMNS),
        descriptions=dict(COLUMN_DESCRIPTIONS),
        scales=scales,
    )


def export_for_statistical_analysis(
    sessions: Sequence[AdaptiveSession],
    item_bank: ItemBank,
    output_format: str = "csv",
) -> StatisticalExport:
    """
    Export session responses for external statistical analysis.

    Args:
        sessions: Sessions to export, active or completed.
        item_bank: Bank used to resolve item category and discrimination.
        output_format: "csv" (header always present) or "jsonl".

    Returns:
        StatisticalExport with the serialized content and column metadata.

    Raises:
        DataExportError: If the format is invalid or serialization fails.
    """
    if output_format not in VALID_FORMATS:
        raise DataExportError(
            f"Invalid output format: {output_format}",
            context={"valid_formats": list(VALID_FORMATS)},
        )

    try:
        logger.info(
            f"Starting statistical export: format={output_format}, "
            f"sessions={len(sessions)}"
        )
        rows = build_export_rows(sessions, item_bank)
        metadata = _build_metadata(rows, item_bank)

        if output_format == "csv":
            content = _generate_csv(rows)
        else:
            content = _generate_jsonl(rows)

        logger.info(f"Exported {len(rows)} responses from {len(sessions)} sessions")
        return StatisticalExport(content=content, metadata=metadata, row_count=len(rows))

    except DataExportError:
        raise
    except Exception as e:
        logger.exception("Failed to export session data")
        raise DataExportError(
            "Failed to export session data",
            original_error=e,
            context={"format": output_format, "sessions": len(sessions)},
        ) from e


def _generate_csv(data: Sequence[Mapping[str, Any]]) -> str:
    """Generate CSV string with the fixed export header."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS)

    writer.writeheader()
    writer.writerows(data)

    return output.getvalue()


def _generate_jsonl(data: Sequence[Mapping[str, Any]]) -> str:
    """Generate JSONL string (one JSON object per line)."""
    if not data:
        return ""

    output = io.StringIO()
    for record in data:
        json.dump(record, output)
        output.write("\n")

    return output.getvalue()
