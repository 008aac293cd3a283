from edrgen.apps.cli.app import app

app(prog_name="edrgen")
