"""CLI entrypoint: Typer app definition and command registration"""

import typer

from scopeslug.cli.commands import init_cmd, lookup_cmd, slugify_cmd


app = typer.Typer(name="scopeslug", no_args_is_help=True, help="Scoped, history-aware slug generation")

app.command(name="init")(init_cmd)
app.command(name="slugify")(slugify_cmd)
app.command(name="lookup")(lookup_cmd)
