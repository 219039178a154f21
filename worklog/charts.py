from __future__ import annotations

from typing import Any, Dict, Iterable, Sequence, Tuple

import altair as alt
import pandas as pd

from worklog.aggregate import Totals
from worklog.records import WorkRecord, records_to_frame

alt.data_transformers.disable_max_rows()

DAILY_COLUMNS = ["day", "productive_hours", "tasks"]
WEEKLY_COLUMNS = ["week_start", "label", "productive_hours", "tasks"]


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _dated_frame(records: Iterable[WorkRecord]) -> pd.DataFrame:
    df = records_to_frame(records).dropna(subset=["date"]).copy()
    df["day"] = df["date"].dt.normalize()
    return df


def daily_series(records: Iterable[WorkRecord]) -> pd.DataFrame:
    df = _dated_frame(records)
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    return (
        df.groupby("day")
        .agg(productive_hours=("productive_hours", "sum"), tasks=("task", "size"))
        .reset_index()
        .sort_values("day")
        .reset_index(drop=True)
    )


def weekly_series(records: Iterable[WorkRecord]) -> pd.DataFrame:
    """Productive hours and task count per week, weeks starting on Sunday."""
    df = _dated_frame(records)
    if df.empty:
        return pd.DataFrame(columns=WEEKLY_COLUMNS)
    offset = pd.to_timedelta((df["day"].dt.dayofweek + 1) % 7, unit="D")
    df["week_start"] = df["day"] - offset
    weekly = (
        df.groupby("week_start")
        .agg(productive_hours=("productive_hours", "sum"), tasks=("task", "size"))
        .reset_index()
        .sort_values("week_start")
        .reset_index(drop=True)
    )
    weekly.insert(1, "label", weekly["week_start"].dt.strftime("Week of %m/%d/%Y"))
    return weekly


def status_pie(statuses: Sequence[Tuple[str, int]]) -> alt.Chart:
    df = pd.DataFrame(list(statuses), columns=["status", "count"])
    return (
        alt.Chart(df)
        .mark_arc(stroke="#232634", strokeWidth=2)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("status:N", title="Status", sort=df["status"].tolist()),
            tooltip=[alt.Tooltip("status:N", title="Status"), alt.Tooltip("count:Q", title="Entries")],
        )
    )


def productive_pie(totals: Totals) -> alt.Chart:
    df = pd.DataFrame(
        [
            {"label": "Productive Tasks", "count": totals.productive_count},
            {"label": "Non-Productive Tasks", "count": totals.non_productive_count},
        ]
    )
    return (
        alt.Chart(df)
        .mark_arc(stroke="#232634", strokeWidth=2)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color(
                "label:N",
                title=None,
                scale=alt.Scale(domain=df["label"].tolist(), range=["#2ecc71", "#e74c3c"]),
            ),
            tooltip=[alt.Tooltip("label:N", title=""), alt.Tooltip("count:Q", title="Entries")],
        )
    )


def daily_bar(daily: pd.DataFrame) -> alt.LayerChart:
    hover = alt.selection_point(fields=["day"], on="mouseover", empty="all")
    base = alt.Chart(daily).encode(x=alt.X("day:T", title="Date", axis=alt.Axis(format="%m/%d", grid=False)))
    bars = (
        base.mark_bar(color="#4f8cff")
        .encode(
            y=alt.Y("productive_hours:Q", title="Productive Hours", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
            tooltip=[
                alt.Tooltip("day:T", title="Date", format="%Y-%m-%d"),
                alt.Tooltip("productive_hours:Q", title="Productive Hours", format=".1f"),
                alt.Tooltip("tasks:Q", title="Tasks"),
            ],
        )
        .add_params(hover)
    )
    tasks = base.mark_line(point=True, color="#7aa2ff").encode(y=alt.Y("tasks:Q", title="Task Count"))
    return alt.layer(bars, tasks).resolve_scale(y="independent").properties(height=260)


def weekly_line(weekly: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(weekly)
        .mark_area(
            line={"color": "#2ecc71"},
            color="rgba(46, 204, 113, 0.1)",
            interpolate="monotone",
            point={"filled": True, "color": "#2ecc71"},
        )
        .encode(
            x=alt.X("label:N", title="Week", sort=weekly["label"].tolist()),
            y=alt.Y("productive_hours:Q", title="Weekly Productive Hours", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[
                alt.Tooltip("label:N", title="Week"),
                alt.Tooltip("productive_hours:Q", title="Productive Hours", format=".1f"),
                alt.Tooltip("tasks:Q", title="Tasks"),
            ],
        )
        .properties(height=260)
    )


def build_charts(
    records: Sequence[WorkRecord],
    totals: Totals,
    statuses: Sequence[Tuple[str, int]],
) -> Dict[str, Any]:
    if not records:
        return {}
    charts: Dict[str, Any] = {
        "status_pie": to_vega_spec(status_pie(statuses)),
        "productive_pie": to_vega_spec(productive_pie(totals)),
    }
    daily = daily_series(records)
    if not daily.empty:
        charts["daily_bar"] = to_vega_spec(daily_bar(daily))
        charts["weekly_line"] = to_vega_spec(weekly_line(weekly_series(records)))
    return charts
