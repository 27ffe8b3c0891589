# levelgate/cli/import_levels.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import typer
import yaml
from pydantic import ValidationError

from levelgate.cli.utils import load_yaml_file, setup_cli_logging
from levelgate.schemas.level import LevelCatalogueModel, LevelModel

logger = logging.getLogger(__name__)

levels_app = typer.Typer(name="levels", help="Manage the level catalogue")


def validate_levels_payload(
    raw_entries: Dict[str, Dict[str, Any]], strict: bool = False
) -> List[LevelModel]:
    """
    Build level models from a YAML `levels` mapping keyed by level id.

    Invalid entries abort with `strict`, otherwise they are skipped.
    """
    level_models: List[LevelModel] = []

    for level_id, entry in raw_entries.items():
        entry_with_id = {"id": str(level_id), **(entry or {})}
        try:
            level_models.append(LevelModel(**entry_with_id))
        except ValidationError as exc:
            typer.echo(f"Validation error in level '{level_id}':\n{exc}", err=True)
            if strict:
                raise typer.Exit(code=1)
            typer.echo("Warning: skipping invalid level ...", err=True)

    return level_models


@levels_app.command("import")
def import_levels(
    input_yaml: List[Path] = typer.Option(
        ...,
        "--input",
        "-i",
        help="YAML file (can be passed multiple times).",
    ),
    api_url: str = typer.Option(..., "--api-url", help="Level Access API base URL"),
    token: Optional[str] = typer.Option(
        None, "--token", envvar="LEVELGATE_TOKEN", help="Admin bearer token"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    strict: bool = typer.Option(
        False, "--strict", help="Fail on first validation error."
    ),
):
    setup_cli_logging(verbose)

    collected: Dict[str, Dict[str, Any]] = {}

    for f in input_yaml:
        try:
            data = load_yaml_file(f)
        except (OSError, yaml.YAMLError) as exc:
            typer.echo(f"Failed to load YAML {f}: {exc}", err=True)
            raise typer.Exit(code=1)

        block = data.get("levels")
        if not block:
            typer.echo(f"Warning: YAML {f} has no 'levels' section.", err=True)
            continue

        for level_id, entry in block.items():
            if level_id in collected:
                typer.echo(
                    f"Warning: duplicate level id '{level_id}' from {f}. Overwriting.",
                    err=True,
                )
            collected[level_id] = entry

    if not collected:
        typer.echo("Combined input contains NO levels.", err=True)
        raise typer.Exit(code=1)

    validated = validate_levels_payload(collected, strict)
    payload = LevelCatalogueModel(levels=validated).model_dump()

    url = api_url.rstrip("/") + "/admin/levels"
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    typer.echo(f"Importing {len(payload['levels'])} levels -> {url}")

    try:
        with httpx.Client(timeout=15.0) as client:
            resp = client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        typer.echo(f"Error importing levels: {exc}", err=True)
        raise typer.Exit(code=1)

    result = resp.json()
    typer.echo(
        f"Level import complete. created={result.get('created')} "
        f"updated={result.get('updated')}"
    )
