"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
processor.py

MAIN OBJECTIVE:
---------------
This script turns the raw posts delivered by the event supplier (or returned by a content search)
into the immutable Event records consumed by the coordination engine, and summarizes actor
display metadata for reporting.

Dependencies:
-------------
- pandas
- logging
- typing

MAIN FEATURES:
--------------
1) Flattening of nested post records into CrowdTangle-style columns
2) Expanded-link unnesting (one row per post and link) with duplicate removal
3) Date conversion to UTC timestamps with invalid row removal
4) Editorial-network and null-account exclusion
5) Actor profile aggregation (joined names/handles, change flags, share counts)

Author:
-------
Antoine Lemor
"""

import logging
from typing import Optional, List, Dict, Any, Union, Iterable
import pandas as pd

from coordination_detector.core.config import EngineConfig
from coordination_detector.core.constants import *
from coordination_detector.core.exceptions import InsufficientInputError
from coordination_detector.core.models import Event

logger = logging.getLogger(__name__)

PostBatch = Union[pd.DataFrame, Iterable[Dict[str, Any]]]


class EventProcessor:
    """
    Processes supplier posts into Events for one content field.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize event processor.

        Args:
            config: Engine configuration
        """
        self.config = config or EngineConfig()
        self.excluded_actor_ids = {str(a) for a in self.config.excluded_actor_ids}

    def build_events(self, posts: Optional[PostBatch], content_field: str) -> List[Event]:
        """
        Build events from a batch of posts.

        Args:
            posts: DataFrame or iterable of post dicts
            content_field: Field holding the shared content ('expanded', 'message', 'imageText')

        Returns:
            List of events, possibly empty

        Raises:
            InsufficientInputError: If no batch was delivered at all
        """
        if posts is None:
            raise InsufficientInputError("No batch of posts was delivered for this cycle")

        df = self.to_frame(posts)
        if df.empty:
            logger.info("Empty batch, no events built")
            return []

        if content_field == STRATEGY_FIELDS[STRATEGY_URL]:
            df = self._unnest_links(df)

        missing = [c for c in (ACCOUNT_ID_FIELD, POST_DATE_FIELD, content_field) if c not in df.columns]
        if missing:
            logger.warning(f"Posts are missing columns {missing}, no events built")
            return []

        initial_rows = len(df)
        df = self._remove_excluded_actors(df)
        df = self._convert_dates(df)
        df = self._clean_content(df, content_field)

        dedup_cols = [c for c in (POST_ID_FIELD, ACCOUNT_ID_FIELD, POST_URL_FIELD, content_field)
                      if c in df.columns]
        df = df.drop_duplicates(subset=dedup_cols)

        removed = initial_rows - len(df)
        if removed > 0:
            logger.debug(f"Removed {removed} rows without usable '{content_field}' content")

        events = [self._row_to_event(row, content_field) for row in df.to_dict('records')]
        logger.info(f"Built {len(events):,} events from '{content_field}'")
        return events

    @staticmethod
    def to_frame(posts: PostBatch) -> pd.DataFrame:
        """Flatten posts to a DataFrame with dotted column names."""
        if isinstance(posts, pd.DataFrame):
            return posts.copy()

        records = list(posts)
        if not records:
            return pd.DataFrame()
        return pd.json_normalize(records, max_level=1)

    @staticmethod
    def _unnest_links(df: pd.DataFrame) -> pd.DataFrame:
        """One row per (post, expanded link)."""
        field = STRATEGY_FIELDS[STRATEGY_URL]

        if field in df.columns or POST_LINKS_FIELD not in df.columns:
            return df

        df = df.explode(POST_LINKS_FIELD, ignore_index=True)
        df[field] = df[POST_LINKS_FIELD].apply(
            lambda link: link.get('expanded') or link.get('original') if isinstance(link, dict) else None
        )
        return df

    def _remove_excluded_actors(self, df: pd.DataFrame) -> pd.DataFrame:
        """Remove editorial networks and deleted-page pseudo accounts."""
        df = df[df[ACCOUNT_ID_FIELD].notna()]
        df = df.assign(**{ACCOUNT_ID_FIELD: df[ACCOUNT_ID_FIELD].map(_as_actor_id)})

        if ACCOUNT_URL_FIELD in df.columns:
            df = df[df[ACCOUNT_URL_FIELD] != NULL_ACCOUNT_URL]

        if self.excluded_actor_ids:
            before = len(df)
            df = df[~df[ACCOUNT_ID_FIELD].isin(self.excluded_actor_ids)]
            if len(df) < before:
                logger.info(f"Excluded {before - len(df)} posts from excluded actors")

        return df

    def _convert_dates(self, df: pd.DataFrame) -> pd.DataFrame:
        """Convert post dates to UTC timestamps, dropping invalid ones."""
        dates = pd.to_datetime(df[POST_DATE_FIELD], utc=True, errors='coerce')
        invalid = int(dates.isna().sum())
        if invalid > 0:
            logger.warning(f"Found {invalid} invalid dates")
        df = df.assign(**{POST_DATE_FIELD: dates})
        return df[df[POST_DATE_FIELD].notna()]

    @staticmethod
    def _clean_content(df: pd.DataFrame, content_field: str) -> pd.DataFrame:
        """Trim content and drop null or empty values."""
        df = df[df[content_field].notna()]
        df = df.assign(**{content_field: df[content_field].astype(str).str.strip()})
        return df[df[content_field] != ""]

    @staticmethod
    def _row_to_event(row: Dict[str, Any], content_field: str) -> Event:
        reference = row.get(POST_URL_FIELD)
        if reference is None or pd.isna(reference):
            reference = row.get(POST_ID_FIELD, "")

        return Event(
            actor_id=str(row[ACCOUNT_ID_FIELD]),
            content_key=row[content_field],
            timestamp=pd.Timestamp(row[POST_DATE_FIELD]),
            actor_handle=_as_text(row.get(ACCOUNT_HANDLE_FIELD)),
            actor_display_name=_as_text(row.get(ACCOUNT_NAME_FIELD)),
            post_reference=_as_text(reference)
        )


def _as_actor_id(value: Any) -> str:
    """Account ids become floats when some posts lack one; 12345.0 maps back to "12345"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def summarize_actors(events: List[Event]) -> pd.DataFrame:
    """
    Aggregate display metadata per actor.
    Actors may change name or handle during a cycle; all distinct values are kept, joined.

    Args:
        events: Events of the cycle

    Returns:
        DataFrame indexed by actor_id with shares, actor_handle, handle_changed,
        actor_display_name and name_changed columns
    """
    columns = ['shares', 'actor_handle', 'handle_changed', 'actor_display_name', 'name_changed']
    if not events:
        return pd.DataFrame(columns=columns).rename_axis('actor_id')

    df = pd.DataFrame([
        {'actor_id': e.actor_id, 'actor_handle': e.actor_handle,
         'actor_display_name': e.actor_display_name}
        for e in events
    ])

    def _join(values: pd.Series) -> str:
        return DISPLAY_SEPARATOR.join(v for v in pd.unique(values) if v)

    profiles = df.groupby('actor_id').agg(
        shares=('actor_id', 'size'),
        actor_handle=('actor_handle', _join),
        n_handles=('actor_handle', lambda s: s[s != ""].nunique()),
        actor_display_name=('actor_display_name', _join),
        n_names=('actor_display_name', lambda s: s[s != ""].nunique())
    )
    profiles['handle_changed'] = profiles['n_handles'] > 1
    profiles['name_changed'] = profiles['n_names'] > 1

    return profiles[columns]
