"""promptrelay reporting views.

Usage:
    from promptrelay.reporting import gallery, stats, rankings

    store = SessionStore(Path("data"))
    for entry in gallery(store):
        print(entry["gameId"], entry["sessionName"])
"""

from .views import gallery, rankings, score_stats, stats

__all__ = [
    "gallery",
    "rankings",
    "score_stats",
    "stats",
]
