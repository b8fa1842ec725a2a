from chatshot.cli.main import app

app()
