"""Main CLI application module.

This module provides the main entry point for the k8s-deploy CLI, which
renders a templated manifest tree with values and secrets and applies it
to a Kubernetes cluster.

Commands:
- init: Create a new deployment
- update: Update an existing deployment
"""

import typer

from .commands import init, update

# Create the main CLI application
app = typer.Typer(
    help="k8s-deploy - a cluster management tool.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("init", help="Create a new deployment")(init)
app.command("update", help="Update an existing deployment")(update)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
