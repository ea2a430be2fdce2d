"""Win/loss/draw bookkeeping for a fighter's match history."""

from typing import Dict, Iterable, Optional

RESULT_COUNTERS = {
    "Won": "wins",
    "Lost": "losses",
    "Draw": "draws",
}

SportRecord = Dict[str, int]


def empty_record() -> SportRecord:
    return {"wins": 0, "losses": 0, "draws": 0}


def apply_result(records: Dict[str, SportRecord], sport: str, result: str) -> Dict[str, SportRecord]:
    """Increment the counter matching `result` for `sport`. "No Contest" only registers the sport."""
    record = records.setdefault(sport, empty_record())
    counter = RESULT_COUNTERS.get(result)
    if counter is not None:
        record[counter] += 1
    return records


def tally(matches: Iterable, base: Optional[Dict[str, SportRecord]] = None) -> Dict[str, SportRecord]:
    records = {sport: dict(counts) for sport, counts in (base or {}).items()}
    for match in matches:
        apply_result(records, match.sport, match.result)
    return records


def format_record(record: SportRecord) -> str:
    return f"{record['wins']}W {record['losses']}L {record['draws']}D"


def overall(records: Dict[str, SportRecord]) -> SportRecord:
    total = empty_record()
    for record in records.values():
        for key in total:
            total[key] += record.get(key, 0)
    return total
