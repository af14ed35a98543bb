from klat.api.cli import app

app(prog_name="klat")
