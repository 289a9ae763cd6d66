# Copyright (c) 2025 Trae AI. All rights reserved.

import typer
from videoshelf.cli.main import app as cli_app
from videoshelf.server.app import Server

app = typer.Typer(help="VideoShelf - Browse and search a downloaded video library.")

# Add CLI commands
app.registered_commands.extend(cli_app.registered_commands)

@app.command("server")
def run_server(config_path: str = "config.yaml"):
    """
    Run the HTTP API server.
    """
    server = Server(config_path)
    server.run()

if __name__ == "__main__":
    app()
