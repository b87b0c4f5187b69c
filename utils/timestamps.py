import datetime


def utc_now(offset_microseconds: int = 0) -> str:
    moment = datetime.datetime.now(datetime.UTC)
    if offset_microseconds:
        moment += datetime.timedelta(microseconds=offset_microseconds)
    # Fixed width so stored timestamps sort lexically
    return moment.isoformat(timespec="microseconds")
