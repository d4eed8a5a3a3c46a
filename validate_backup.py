#!/usr/bin/env python3
"""Validate backup JSON files against the backup schema."""
import json
import sys
from pathlib import Path
from typing import List

from jsonschema import validate, ValidationError

from ledger.backup import load_schema


def validate_backup_file(filepath: Path, schema: dict) -> List[str]:
    """Validate a single backup file. Returns list of errors."""
    errors = []
    try:
        with open(filepath, encoding="utf-8") as f:
            data = json.load(f)
        validate(instance=data, schema=schema)
    except json.JSONDecodeError as e:
        errors.append(f"JSON parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except (OSError, UnicodeDecodeError) as e:
        errors.append(f"Error: {e}")
    return errors


def collect_files(paths: List[Path]) -> List[Path]:
    """Expand directories into the *.json files they contain."""
    files = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(path.glob("*.json")))
        else:
            files.append(path)
    return files


def main(argv=None):
    """Validate the backup files (or directories of them) given on the command line."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: validate_backup.py FILE_OR_DIR [FILE_OR_DIR ...]")
        return 1

    schema = load_schema()
    files = collect_files([Path(a) for a in args])

    if not files:
        print("Warning: No backup files found")
        return 0

    all_valid = True
    for filepath in files:
        errors = validate_backup_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
