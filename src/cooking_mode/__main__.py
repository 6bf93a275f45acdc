from cooking_mode.cli import cli

cli()
