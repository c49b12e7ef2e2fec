from tickflow.cli import app

app()
