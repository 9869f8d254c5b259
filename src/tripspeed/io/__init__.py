from .fixes import LocationProvider, ReplayClock, ReplayLocationProvider, Subscription, load_fixes_csv

__all__ = [
    "LocationProvider",
    "ReplayClock",
    "ReplayLocationProvider",
    "Subscription",
    "load_fixes_csv",
]
