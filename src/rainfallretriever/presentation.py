"""Tables, CSV export, and user-facing error text derived from orchestrator state."""

import pandas as pd

from rainfallretriever.errors import ErrorKind
from rainfallretriever.i18n import t
from rainfallretriever.models import RETURN_PERIODS, RainfallDataset, RetrievalIssue, TableKind

COLUMNS: tuple[str, ...] = ("Duration", *RETURN_PERIODS)


def table_frame(dataset: RainfallDataset, kind: TableKind) -> pd.DataFrame:
    """One row per duration, one column per return period."""
    rows = [
        [record.duration, *(record[period] for period in RETURN_PERIODS)]
        for record in dataset.table(kind)
    ]
    return pd.DataFrame(rows, columns=list(COLUMNS))


def to_csv(dataset: RainfallDataset, kind: TableKind) -> str:
    """Header row of the seven labels, then one row per duration."""
    return table_frame(dataset, kind).to_csv(index=False, lineterminator="\n")


def csv_filename(kind: TableKind, latitude: str, longitude: str) -> str:
    """``rainfall_<kind>_<lat>_<lon>.csv`` using the form's exact text values."""
    return f"rainfall_{kind.value}_{latitude}_{longitude}.csv"


def error_message(issue: RetrievalIssue, lang: str = "en") -> str:
    """Single human-readable message for a classified failure."""
    if issue.kind is ErrorKind.VALIDATION:
        if issue.code:
            return t(f"error_{issue.code}", lang)
        return issue.message or t("error_unexpected", lang)
    if issue.kind is ErrorKind.GEOCODING:
        return t("error_geocoding", lang)
    if issue.kind is ErrorKind.RETRIEVAL:
        return issue.message or t("error_unexpected", lang)
    return t("error_unexpected", lang)
