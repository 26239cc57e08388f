from searchmetrics.cli.app import app

app()
