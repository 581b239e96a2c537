"""Document validation against the bundled JSON Schema draft-07 definitions."""

import json
from pathlib import Path

import jsonschema

DOCUMENT_SCHEMAS: dict[str, str] = {
    "DialogueRecords": "DialogueRecords.v1.json",
    "ExportIndex": "ExportIndex.v1.json",
    "ReferenceAudioList": "ReferenceAudioList.v1.json",
    "ClassifierConfig": "ClassifierConfig.v1.json",
    "TTSBackendConfig": "TTSBackendConfig.v1.json",
}

SCHEMAS_DIR = Path(__file__).parent / "schemas"


def load_schema(document_type: str) -> dict:
    """Read the schema registered for *document_type*.

    Raises:
        KeyError: If document_type is not recognised.
    """
    schema_file = SCHEMAS_DIR / DOCUMENT_SCHEMAS[document_type]
    return json.loads(schema_file.read_text(encoding="utf-8"))


def validate_document(data, document_type: str) -> None:
    """Validate *data* against the schema for *document_type*.

    Raises:
        KeyError: If document_type is not recognised.
        jsonschema.ValidationError: If data does not conform to the schema.
        jsonschema.SchemaError: If the schema file itself is malformed.
    """
    jsonschema.validate(instance=data, schema=load_schema(document_type))
