"""Main entry point for the ascon_lens package."""
from ascon_lens.cli import cli


def main():
    """Main entry point function."""
    cli()


if __name__ == "__main__":
    main()
