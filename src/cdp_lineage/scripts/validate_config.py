"""Dashboard configuration check.

Backs the console script ``cdp-validate-config``. Validates the settings
files under ``config/`` against their schemas and, with ``--env``, the
``CDP_*`` overrides (process environment plus an optional ``.env`` file)
against the same settings schema. Reads nothing else and is safe to run
offline, e.g. as a deploy pre-check.

Exit status is 0 when everything validates and 1 otherwise.
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from dotenv import dotenv_values

from cdp_lineage.core.config_validation import SCHEMAS_BY_FILENAME, validate_config_dir
from cdp_lineage.core.settings import ENV_OVERRIDES, PROJECT_ROOT, validate_environment

ENVIRONMENT_KEY = "environment"


def collect_environment(env_file: Optional[Path]) -> Dict[str, str]:
    """``CDP_*`` variables from ``env_file`` (if present), overridden by the process environment."""
    environ: Dict[str, str] = {}
    if env_file is not None and env_file.exists():
        environ.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    environ.update(os.environ)
    return {name: environ[name] for name in ENV_OVERRIDES if name in environ}


def check(config_dir: Path, *, all_json: bool = False, env_file: Optional[Path] = None,
          include_env: bool = False) -> Dict[str, List[str]]:
    """Errors keyed by config file path, plus ``environment`` for bad overrides."""
    results = validate_config_dir(config_dir, only_known_files=not all_json)
    if include_env:
        env_errors = validate_environment(collect_environment(env_file))
        if env_errors:
            results[ENVIRONMENT_KEY] = env_errors
    return results


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate CDP lineage dashboard settings")
    parser.add_argument(
        "config_dir",
        nargs="?",
        default=PROJECT_ROOT / "config",
        type=Path,
        help="Config directory to validate (default: repo_root/config)",
    )
    parser.add_argument(
        "--all-json",
        action="store_true",
        help=f"Validate every *.json file, not only {', '.join(sorted(SCHEMAS_BY_FILENAME))}",
    )
    parser.add_argument(
        "--env",
        dest="include_env",
        action="store_true",
        help=f"Also validate the environment overrides ({', '.join(ENV_OVERRIDES)})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=PROJECT_ROOT / ".env",
        help="Dotenv file read with --env (default: repo_root/.env)",
    )
    parser.add_argument("--json", dest="json_output", action="store_true", help="Print results as JSON")
    return parser.parse_args(argv)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    results = check(args.config_dir, all_json=args.all_json, env_file=args.env_file, include_env=args.include_env)

    if args.json_output:
        print(json.dumps(results, indent=2))
    elif not results:
        checked = f"{args.config_dir} and environment" if args.include_env else str(args.config_dir)
        print(f"✅ Dashboard settings valid: {checked}")
    else:
        print("❌ Dashboard settings errors\n")
        for source, errors in results.items():
            print(source)
            for err in errors:
                print(f"  - {err}")
            print()

    return 1 if results else 0


if __name__ == "__main__":
    raise SystemExit(main())
