from dh_cli.commands import app

app()
