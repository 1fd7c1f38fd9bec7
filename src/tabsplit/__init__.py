"""Shared-expense money core: scaled amounts, splits and cached exchange rates."""

__version__ = "0.1.0"


# Import main lazily so `import tabsplit` does not pull in click
def __getattr__(name):
    if name == "main":
        from tabsplit.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
