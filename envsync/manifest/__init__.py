"""Manifest layer — file names, schema, and the YAML loader.

The manifest (``envsync.yaml``) is the declarative target every command
reads. The pin file (``.nvmrc``) mirrors ``runtime.node`` so other tools
pick up the same version.
"""

MANIFEST_FILE = "envsync.yaml"
PIN_FILE = ".nvmrc"
PROJECT_MANIFEST = "package.json"
FRAMEWORK_CONFIG = "angular.json"
SCHEMA_VERSION = "1.0.0"
