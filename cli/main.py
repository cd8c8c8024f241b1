from features.certs.presentation.cli import app


def main() -> None:
    """Console entrypoint."""
    app()


if __name__ == '__main__':
    main()
