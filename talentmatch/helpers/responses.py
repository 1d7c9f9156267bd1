"""
Turning raw model output into typed records.

Models wrap JSON in prose, return numbers as strings, lists as comma separated
text and occasionally use camelCase keys. Everything here coerces that into the
record models, and ``response_to_record`` is the only place that knows the
response is "JSON somewhere between braces".
"""
import json
import math
import re
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from talentmatch.models.models import (
    CandidateRecord,
    EducationEntry,
    JobHistoryEntry,
    Kind,
    PositionRecord,
)
from talentmatch.utils.exceptions import ChunkSkipped
from talentmatch.utils.utils import locate_json

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def as_text(x: Any) -> Optional[str]:
    if x is None or isinstance(x, (dict, bool)):
        return None
    if isinstance(x, list):
        # join list of sentences or tokens into one paragraph
        x = " ".join([str(t).strip() for t in x if t is not None and str(t).strip()])
    text = str(x).strip()
    return text or None


def as_list(x: Any) -> List[str]:
    if x is None:
        return []
    if isinstance(x, str):
        parts = [p.strip() for p in x.replace(";", ",").split(",")]
        return [p for p in parts if p]
    if isinstance(x, list):
        out = []
        for t in x:
            if t is None or isinstance(t, (dict, list)):
                continue
            t = str(t).strip()
            if t:
                out.append(t)
        return out
    return []


def as_number(x: Any) -> Optional[float]:
    if isinstance(x, list):
        # sometimes model returns ["6"]; take first
        x = x[0] if x else None
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        value = float(x)
    else:
        found = _NUMBER.search(str(x))
        if not found:
            return None
        value = float(found.group())
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_entries(x: Any, model: Type[BaseModel], text_field: str) -> List[BaseModel]:
    if not isinstance(x, list):
        return []
    entries = []
    for item in x:
        if isinstance(item, dict):
            values = {name: as_text(item.get(name)) for name in model.model_fields}
        else:
            values = {text_field: as_text(item)}
        if any(v is not None for v in values.values()):
            entries.append(model(**values))
    return entries


def _candidate_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "name": as_text(_pick(data, "name", "full_name")),
        "email": as_text(_pick(data, "email")),
        "phone": as_text(_pick(data, "phone")),
        "location": as_text(_pick(data, "location")),
        "summary": as_text(_pick(data, "summary")),
        "experience_years": as_number(_pick(data, "experience_years", "experienceYears", "years_experience")),
        "technologies": as_list(_pick(data, "technologies", "skills")),
        "job_history": _as_entries(_pick(data, "job_history", "jobHistory"), JobHistoryEntry, "position"),
        "education": _as_entries(_pick(data, "education"), EducationEntry, "degree"),
        "warnings": as_list(_pick(data, "warnings")),
    }


def _position_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": as_text(_pick(data, "title")),
        "company": as_text(_pick(data, "company")),
        "location": as_text(_pick(data, "location")),
        "salary": as_text(_pick(data, "salary")),
        "description": as_text(_pick(data, "description")),
        "experience_required": as_number(_pick(data, "experience_required", "experienceRequired")),
        "required_skills": as_list(_pick(data, "required_skills", "requiredSkills", "skills")),
        "requirements": as_list(_pick(data, "requirements")),
        "warnings": as_list(_pick(data, "warnings")),
    }


def response_to_record(raw: str, kind: Kind, chunk_index: Optional[int] = None):
    """
    Parse one model response into a CandidateRecord or PositionRecord.

    Raises ChunkSkipped when no object can be located, parsed or validated.
    """
    kind = Kind(kind)
    located = locate_json(raw or "")
    if located is None:
        raise ChunkSkipped("No JSON object found in model response", chunk_index=chunk_index)

    try:
        data = json.loads(located)
    except ValueError as e:
        raise ChunkSkipped(f"Malformed JSON in model response: {e}", chunk_index=chunk_index, cause=e) from e

    if not isinstance(data, dict):
        raise ChunkSkipped("Model response is not a JSON object", chunk_index=chunk_index)

    try:
        if kind is Kind.CANDIDATE:
            return CandidateRecord(**_candidate_fields(data))
        return PositionRecord(**_position_fields(data))
    except PydanticValidationError as e:
        raise ChunkSkipped(f"Model response failed validation: {e}", chunk_index=chunk_index, cause=e) from e
