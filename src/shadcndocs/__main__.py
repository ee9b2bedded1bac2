from shadcndocs.cli import app

app()
