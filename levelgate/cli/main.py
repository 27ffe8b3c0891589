# levelgate/cli/main.py
from __future__ import annotations
import typer

from levelgate.cli.db import db_app
from levelgate.cli.import_levels import levels_app

app = typer.Typer(help="Level access command-line utilities", no_args_is_help=True)

app.add_typer(db_app, name="db")
app.add_typer(levels_app, name="levels")


def run():
    app()


if __name__ == "__main__":
    run()
