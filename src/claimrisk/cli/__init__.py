"""Command line interface for claimrisk."""


def main() -> None:
    """CLI entrypoint for the claimrisk console script."""
    from claimrisk.cli.app import app

    app()
