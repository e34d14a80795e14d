"""Allow ``python -m mobilectl`` as an alias for the console script."""

from mobilectl.cli import main


if __name__ == "__main__":
    main(prog_name="mobilectl")
