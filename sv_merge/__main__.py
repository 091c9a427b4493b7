"""Command-line entry point for the sv_merge package."""

from sv_merge.cli import main as _workflow_main


def main() -> None:
    """Execute the sv_merge command-line interface."""

    _workflow_main()


if __name__ == "__main__":  # pragma: no cover - entry point
    main()
