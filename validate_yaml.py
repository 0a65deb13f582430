#!/usr/bin/env python3
"""Validate fleet YAML data files against the schema."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def validate_fleet_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data or {}, schema=schema)
        errors.extend(check_references(data or {}))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def check_references(data: dict) -> list[str]:
    """Cross-record checks the schema can't express."""
    errors = []
    vehicles = data.get("vehicles") or []
    owners = {v["id"]: v["accountId"] for v in vehicles}

    seen = set()
    for v in vehicles:
        if v.get("deletedAt"):
            continue
        key = (v["accountId"], "".join(v["plate"].split()).upper())
        if key in seen:
            errors.append(f"Duplicate plate for account {v['accountId']}: {v['plate']}")
        seen.add(key)

    for section in ("serviceRecords", "tasks", "fuelRecords"):
        for item in data.get(section) or []:
            owner = owners.get(item["vehicleId"])
            if owner is None:
                errors.append(f"{section} {item['id']}: unknown vehicle {item['vehicleId']}")
            elif owner != item["accountId"]:
                errors.append(f"{section} {item['id']}: vehicle belongs to another account")

    for tire in data.get("tires") or []:
        if tire["vehicleId"] not in owners:
            errors.append(f"tires {tire['id']}: unknown vehicle {tire['vehicleId']}")

    return errors


def main(argv=None):
    """Validate the fleet YAML files given on the command line."""
    paths = [Path(p) for p in (argv if argv is not None else sys.argv[1:])]
    if not paths:
        print("Usage: validate_yaml.py FILE [FILE ...]")
        return 1

    schema = load_schema()
    all_valid = True
    for filepath in paths:
        errors = validate_fleet_file(filepath, schema)
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
