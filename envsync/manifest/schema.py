"""JSON Schema for the ``envsync.yaml`` manifest.

This is the structural gate: a manifest that does not pass it is rejected
before any probe runs. Tools can export it (``envsync schema``) and use it
with any JSON Schema validator.
"""

from envsync.manifest import SCHEMA_VERSION

SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"

ENVSYNC_MANIFEST_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": f"https://envsync.dev/schema/manifest/v{SCHEMA_VERSION}",
    "title": "EnvSync Manifest",
    "description": "Declarative development environment for an Angular project.",
    "type": "object",
    "required": ["project", "runtime"],
    "properties": {
        "project": {
            "type": "object",
            "required": ["name", "type"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "type": {
                    "type": "string",
                    "enum": ["angular"],
                    "description": "Only Angular projects are supported.",
                },
                "angularVersion": {
                    "type": "string",
                    "pattern": r"^\d+\.\d+\.\d+",
                },
            },
        },
        "runtime": {
            "type": "object",
            "required": ["node", "packageManager"],
            "properties": {
                "node": {
                    "type": "string",
                    "pattern": SEMVER_PATTERN,
                    "description": "Exact Node.js version, e.g. 20.11.1.",
                },
                "packageManager": {
                    "type": "string",
                    "pattern": r"^[a-z][a-z0-9-]*(@[^@\s]+)?$",
                    "description": "Package manager name, optionally name@tag.",
                },
            },
        },
        "dependencies": {
            "type": "object",
            "properties": {
                "global": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                },
            },
        },
        "extensions": {
            "type": "object",
            "properties": {
                "vscode": {
                    "type": "array",
                    "items": {"type": "string", "minLength": 1},
                },
            },
        },
        "scripts": {
            "type": "object",
            "properties": {
                # Items may be mappings: YAML reads `npx husky: install` as one.
                "pre-sync": {"type": "array"},
                "post-sync": {"type": "array"},
            },
        },
    },
}


def get_schema() -> dict:
    """Return the manifest JSON Schema."""
    return ENVSYNC_MANIFEST_SCHEMA
