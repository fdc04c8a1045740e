import json
import sys
from pathlib import Path
from typing import Any, Dict

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError


SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "settlement_log.schema.json"


def load_json(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise RuntimeError(f"Failed to load JSON from {path}: {e}") from e


def load_schema(path: Path = SCHEMA_PATH) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found at {path}")
    return load_json(path)


def validate_schema(instance: Dict[str, Any], schema: Dict[str, Any], file_path: Path):
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.path])

    if errors:
        print(f"\n❌ Schema validation failed for {file_path.name}:")
        for error in errors:
            path = ".".join([str(p) for p in error.path])
            print(f"  - Path: {path or '(root)'}")
            print(f"    Message: {error.message}")
        raise ValidationError(f"Schema validation failed for {file_path.name}")
    else:
        print(f"✅ Schema validation passed: {file_path.name}")


def validate_semantics(instance: Dict[str, Any], file_path: Path):
    """
    Settlement rules a schema cannot express.
    """
    events = instance.get("events", [])

    # Rule 1: event sequence numbers are 0..n-1 in order
    sequences = [e["sequence"] for e in events]
    if sequences != list(range(len(events))):
        raise ValueError(f"{file_path.name}: event sequence numbers are not contiguous")

    # Rule 2: at most one resolution
    resolutions = [e for e in events if e["kind"] == "resolution"]
    if len(resolutions) > 1:
        raise ValueError(
            f"{file_path.name}: {len(resolutions)} resolution events, expected at most 1"
        )

    # Rule 3: no deposits after resolution, no claims before it
    if resolutions:
        resolved_seq = resolutions[0]["sequence"]
        late = [e for e in events if e["kind"] == "deposit" and e["sequence"] > resolved_seq]
        if late:
            raise ValueError(f"{file_path.name}: deposit recorded after resolution")
    early = [
        e for e in events
        if e["kind"] == "claim" and (not resolutions or e["sequence"] < resolutions[0]["sequence"])
    ]
    if early:
        raise ValueError(f"{file_path.name}: claim recorded before resolution")

    # Rule 4: each (caller, pool) settles at most once, and only the winning pool pays
    seen = set()
    winning_pool = resolutions[0]["winning_pool"] if resolutions else None
    for e in events:
        if e["kind"] != "claim":
            continue
        key = (e["caller"], e["pool"])
        if key in seen:
            raise ValueError(
                f"{file_path.name}: {e['caller']} claimed pool {e['pool']} more than once"
            )
        seen.add(key)
        if e["won"] != (e["pool"] == winning_pool):
            raise ValueError(
                f"{file_path.name}: claim by {e['caller']} disagrees with winning pool {winning_pool}"
            )
        if not e["won"] and (e["payout"] or e["stake_returned"]):
            raise ValueError(f"{file_path.name}: losing claim by {e['caller']} paid out")

    # Rule 5: pool totals match escrow holdings
    conservation = instance.get("conservation")
    if conservation is not None and conservation.get("holds") is not True:
        raise ValueError(f"{file_path.name}: pool totals do not match escrow holdings")

    print(f"✅ Semantic validation passed: {file_path.name}")


def validate_file(file_path: Path, schema: Dict[str, Any]):
    print(f"\nValidating {file_path} ...")
    instance = load_json(file_path)

    validate_schema(instance, schema, file_path)
    validate_semantics(instance, file_path)


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m escrow.validate_log <settlement_log.json or run directory>")
        sys.exit(1)

    target_path = Path(sys.argv[1]).resolve()

    if not target_path.exists():
        print(f"Path does not exist: {target_path}")
        sys.exit(1)

    schema = load_schema(SCHEMA_PATH)

    if target_path.is_file():
        validate_file(target_path, schema)
    else:
        log_files = sorted(target_path.rglob("settlement_log.json"))
        if not log_files:
            print(f"No settlement_log.json files found in {target_path}")
            sys.exit(1)

        failures = 0
        for file_path in log_files:
            try:
                validate_file(file_path, schema)
            except (ValidationError, ValueError, RuntimeError) as e:
                print(f"❌ {e}")
                failures += 1

        if failures > 0:
            print(f"\n{failures} file(s) failed validation.")
            sys.exit(1)

    print("\nAll validations completed successfully.")


if __name__ == "__main__":
    main()
