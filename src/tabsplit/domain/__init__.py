"""Domain layer for tabsplit application."""


# Services import the storage interfaces, which import entities from this
# package, so they are loaded lazily.
def __getattr__(name):
    if name == "ExchangeRateCache":
        from tabsplit.domain.exchange_rate import ExchangeRateCache
        return ExchangeRateCache
    if name == "ExpenseService":
        from tabsplit.domain.expense import ExpenseService
        return ExpenseService
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["ExchangeRateCache", "ExpenseService"]
