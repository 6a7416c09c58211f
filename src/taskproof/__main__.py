"""Allow ``python -m taskproof``."""
from taskproof.cli import main

if __name__ == "__main__":
    main()
