"""
Structured-output contracts for the AI capability.

Declared in the OpenAPI subset the Gemini API accepts. ``to_json_schema``
converts them for providers that expect standard JSON Schema.
"""

import copy
from typing import Any, Dict

_TRANSCRIPT_PROPERTIES: Dict[str, Any] = {
    "patientId": {
        "type": "STRING",
        "description": "The unique identifier for the patient.",
    },
    "consultationDate": {
        "type": "STRING",
        "description": "The date of the consultation in YYYY-MM-DD format.",
    },
    "transcript": {
        "type": "ARRAY",
        "description": "An array of transcript entries, each containing a speaker, their dialogue, and a timestamp.",
        "items": {
            "type": "OBJECT",
            "properties": {
                "speaker": {
                    "type": "STRING",
                    "description": 'The speaker of the line, either "Doctor" or "Patient".',
                },
                "line": {
                    "type": "STRING",
                    "description": "The transcribed dialogue text.",
                },
                "timestamp": {
                    "type": "STRING",
                    "description": "Timestamp of when the line was spoken, in HH:MM:SS format.",
                },
            },
            "required": ["speaker", "line", "timestamp"],
        },
    },
}

BASIC_TRANSCRIPT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": copy.deepcopy(_TRANSCRIPT_PROPERTIES),
    "required": ["patientId", "consultationDate", "transcript"],
}

ENHANCED_TRANSCRIPT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        **copy.deepcopy(_TRANSCRIPT_PROPERTIES),
        "mentalStatusExam": {
            "type": "OBJECT",
            "description": "Mental Status Exam observations from video analysis",
            "properties": {
                "appearance": {
                    "type": "STRING",
                    "description": "Observations about grooming, hygiene, dress appropriateness",
                },
                "behavior": {
                    "type": "STRING",
                    "description": "Psychomotor activity, eye contact, cooperation, gestures",
                },
                "affect": {
                    "type": "STRING",
                    "description": "Range, appropriateness, intensity, and quality of emotional expression",
                },
                "speech": {
                    "type": "STRING",
                    "description": "Rate, volume, articulation, fluency of speech",
                },
            },
            "required": ["appearance", "behavior", "affect", "speech"],
        },
        "clinicalObservations": {
            "type": "ARRAY",
            "description": "Notable clinical observations with timestamps",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "timestamp": {
                        "type": "STRING",
                        "description": "When the observation occurred",
                    },
                    "observation": {
                        "type": "STRING",
                        "description": "The clinical observation",
                    },
                },
                "required": ["timestamp", "observation"],
            },
        },
    },
    "required": ["patientId", "consultationDate", "transcript", "mentalStatusExam"],
}


def get_transcript_schema(enhanced: bool = False) -> Dict[str, Any]:
    """Returns a copy, callers may hand it to SDKs that mutate their input."""
    return copy.deepcopy(ENHANCED_TRANSCRIPT_SCHEMA if enhanced else BASIC_TRANSCRIPT_SCHEMA)


def to_json_schema(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Converts an OpenAPI-subset schema to standard JSON Schema"""
    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type":
            converted[key] = value.lower()
        elif key == "properties":
            converted[key] = {name: to_json_schema(prop) for name, prop in value.items()}
        elif key == "items":
            converted[key] = to_json_schema(value)
        else:
            converted[key] = copy.deepcopy(value)
    if converted.get("type") == "object":
        converted.setdefault("additionalProperties", False)
    return converted
