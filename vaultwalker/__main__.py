"""Module entrypoint for ``python -m vaultwalker``."""

from .cli import main

if __name__ == "__main__":
    main()
