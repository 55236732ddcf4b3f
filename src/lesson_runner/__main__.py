"""Module entrypoint for `python -m lesson_runner`."""

from .cli import main_entry

if __name__ == "__main__":
    main_entry()
