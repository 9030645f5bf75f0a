from datetime import datetime, timezone


def utcnow() -> datetime:
    ts = datetime.now(timezone.utc)
    # normalizzazione: tronca ai millisecondi (precisione di Mongo)
    return ts.replace(microsecond=(ts.microsecond // 1000) * 1000)
