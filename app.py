import pandas as pd
import streamlit as st
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from worklog.config import NumericTimeUnit, Settings
from worklog.filters import (
    FilterCriteria,
    Productivity,
    apply_filters,
    current_month_range,
    unique_developers,
    unique_statuses,
)
from worklog.loader import WorkbookResult, data_sheet_names, load_workbook, read_workbook
from worklog.parsing import format_minutes
from worklog.records import WorkRecord, records_to_frame
from worklog.report import compute_performance, compute_report

RECORD_COLUMNS = ["date", "ticket_display", "task", "status", "productive_hours", "time_spent", "developer", "comments"]


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_wl_css_injected"):
        return
    st.markdown(
        """
        <style>
        .wl-header {padding: 4px 0;border-bottom: 2px solid #dbe4f0;margin-bottom: 8px;}
        .wl-header .wl-crumb {color: #64748b;font-size: 0.85rem;}
        .wl-header .wl-title {font-size: 1.35rem;font-weight: 700;color: #0f172a;}
        .wl-panel-title {font-weight: 600;font-size: 0.95rem;color: #1e3a8a;margin: 10px 0 4px;}
        .wl-chips {display: flex;flex-wrap: wrap;gap: 6px;margin: 4px 0 10px;}
        .wl-chip {background: #eef2ff;border-radius: 10px;padding: 2px 9px;font-size: 0.8rem;color: #3730a3;}
        .wl-chip.muted {background: #f1f5f9;color: #475569;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_wl_css_injected"] = True


@contextmanager
def panel(title: str):
    st.markdown(f"<div class='wl-panel-title'>{title}</div>", unsafe_allow_html=True)
    body = st.container(border=True)
    with body:
        yield body


def format_filter_summary(criteria: FilterCriteria) -> str:
    if criteria.start_date or criteria.end_date:
        date_chip = f"Dates: {criteria.start_date or '…'} – {criteria.end_date or '…'}"
    else:
        date_chip = "Dates: All"
    chips = [
        (date_chip, criteria.start_date is None and criteria.end_date is None),
        (f"Developer: {criteria.developer or 'All'}", criteria.developer is None),
        (f"Status: {criteria.status or 'All'}", criteria.status is None),
        ("Leave: excluded" if criteria.exclude_leave else "Leave: included", not criteria.exclude_leave),
    ]
    if criteria.text_query:
        chips.append((f"Search: {criteria.text_query}", False))
    if criteria.ticket_query:
        chips.append((f"Ticket: {criteria.ticket_query}", False))
    return "".join(f"<span class='wl-chip{' muted' if idle else ''}'>{txt}</span>" for txt, idle in chips)


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='wl-header'><div class='wl-crumb'>{breadcrumb}</div><div class='wl-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='wl-chips'>{filter_summary_html}</div>", unsafe_allow_html=True)


def render_kpi_tiles(totals: Dict[str, Any], show_developers: bool = True):
    cols = st.columns(5 if show_developers else 4)
    cols[0].metric("Total Time", totals["time_spent"])
    cols[1].metric("Productive Hours", f"{totals['productive_hours']:.1f}h")
    cols[2].metric("Entries", f"{totals['tasks']:,}")
    cols[3].metric("Productive / Non-Productive", f"{totals['productive_count']} / {totals['non_productive_count']}")
    if show_developers:
        cols[4].metric("Developers", totals["developers"])


def records_table(records: List[WorkRecord]) -> pd.DataFrame:
    df = records_to_frame(records)
    df["time_spent"] = df["time_spent_minutes"].apply(format_minutes)
    df["fallback"] = [
        "Time Spent" not in r.original or str(r.original.get("Time Spent", "")).strip() == "" for r in records
    ]
    return df[RECORD_COLUMNS + ["fallback"]]


def date_range_inputs(key: str) -> Tuple[Optional[date], Optional[date]]:
    start_key, end_key = f"{key}_start", f"{key}_end"
    if st.button("This month", key=f"{key}_this_month"):
        st.session_state[start_key], st.session_state[end_key] = current_month_range()
    st.session_state.setdefault(start_key, None)
    st.session_state.setdefault(end_key, None)
    c1, c2 = st.columns(2)
    start = c1.date_input("From", key=start_key)
    end = c2.date_input("To", key=end_key)
    return start or None, end or None


# ---------- UI setup ----------
st.set_page_config(page_title="Worklog Dashboard", layout="wide")
inject_base_styles()
st.title("Developer Worklog Dashboard")
st.caption("Upload a timesheet export to review logged work and developer performance.")

uploaded = st.file_uploader("Timesheet workbook", type=["xlsx", "xls"])
if uploaded is None:
    st.info("Upload an Excel timesheet with Date, Ticket, Task, Status, Productive, Time Spent and Developer columns.")
    st.stop()

file_key = f"{uploaded.name}:{uploaded.size}"
if st.session_state.get("_workbook_key") != file_key:
    st.session_state["_workbook"] = read_workbook(uploaded.getvalue())
    st.session_state["_workbook_key"] = file_key
workbook: WorkbookResult = st.session_state["_workbook"]

with st.sidebar:
    st.markdown("### Data")
    unit_label = st.radio("Numeric Time Spent is in", ["Hours", "Minutes"], index=0, horizontal=True)
    numeric_time_as = NumericTimeUnit.HOURS if unit_label == "Hours" else NumericTimeUnit.MINUTES
    settings = Settings(numeric_time_as=numeric_time_as)
    sheet_names = data_sheet_names(workbook.sheets)
    selected_sheet = st.selectbox("Sheet", options=sheet_names, index=0) if sheet_names else None

sheet_load = load_workbook(workbook, selected_sheet, settings)
if not sheet_load.ok:
    failure = sheet_load.result.failure
    st.error(failure.message)
    st.stop()

records: List[WorkRecord] = list(sheet_load.result.records)

with st.sidebar:
    st.markdown("---")
    st.markdown("### Quick filters")
    exclude_leave = st.checkbox("Exclude leave / vacation entries", value=False)
    developer = st.selectbox("Developer", options=["ALL"] + unique_developers(records), index=0, key="report_developer")
    status = st.selectbox("Status", options=["ALL"] + unique_statuses(records), index=0)
    productive_label = st.selectbox("Productive", options=["All", "Productive", "Non-productive"], index=0)
    text_query = st.text_input("Search ticket / task", "")
    start_date, end_date = date_range_inputs("report")

criteria = FilterCriteria(
    developer=None if developer == "ALL" else developer,
    status=None if status == "ALL" else status,
    productivity={
        "Productive": Productivity.PRODUCTIVE,
        "Non-productive": Productivity.NON_PRODUCTIVE,
    }.get(productive_label, Productivity.ANY),
    text_query=text_query.strip(),
    start_date=start_date,
    end_date=end_date,
    exclude_leave=exclude_leave,
)


def render_report_page():
    payload = compute_report(records, criteria)
    table = records_table(apply_filters(records, criteria))
    render_page_header("Report", f"{uploaded.name} / {sheet_load.selected_sheet}", format_filter_summary(criteria), export_df=table, export_name="worklog.csv")
    with panel("Totals"):
        render_kpi_tiles(payload["totals"])
    cols = st.columns([1, 2])
    with cols[0]:
        with panel("By status"):
            status_df = pd.DataFrame(payload["status"], columns=["status", "count"])
            st.dataframe(status_df.rename(columns={"status": "Status", "count": "Entries"}), hide_index=True)
    with cols[1]:
        with panel("Entries"):
            if table.empty:
                st.info("No entries match the current filters.")
            else:
                st.dataframe(table, hide_index=True)


def render_performance_page():
    developers = unique_developers(records)
    perf_dev = st.selectbox("Developer", options=[""] + developers, index=0, format_func=lambda d: d or "Select a developer…", key="perf_developer")
    c1, c2 = st.columns([2, 1])
    with c1:
        perf_start, perf_end = date_range_inputs("perf")
    with c2:
        ticket_query = st.text_input("Ticket filter", "")
        by_task = st.checkbox("Group by task", value=False)

    perf_criteria = FilterCriteria(
        ticket_query=ticket_query.strip(),
        start_date=perf_start,
        end_date=perf_end,
        exclude_leave=criteria.exclude_leave,
    )
    payload = compute_performance(records, perf_dev or None, perf_criteria, by_task=by_task)
    summary = FilterCriteria(
        developer=payload["developer"],
        ticket_query=perf_criteria.ticket_query,
        start_date=perf_start,
        end_date=perf_end,
        exclude_leave=perf_criteria.exclude_leave,
    )
    render_page_header("Developer Performance", "Home / Performance", format_filter_summary(summary))
    if payload["developer"] is None:
        st.info("Pick a developer to see their breakdown.")
        return

    with panel("Totals"):
        render_kpi_tiles(payload["totals"], show_developers=False)
    if not payload["rows"]:
        st.info("No entries for this developer in the selected range.")
        return

    charts = payload["charts"]
    pie_cols = st.columns(2)
    with pie_cols[0]:
        with panel("Status mix"):
            st.vega_lite_chart(spec=charts["status_pie"], use_container_width=True)
    with pie_cols[1]:
        with panel("Productive vs non-productive"):
            st.vega_lite_chart(spec=charts["productive_pie"], use_container_width=True)

    if "daily_bar" in charts:
        trend_cols = st.columns(2)
        with trend_cols[0]:
            with panel("Daily productivity"):
                st.vega_lite_chart(spec=charts["daily_bar"], use_container_width=True)
        with trend_cols[1]:
            with panel("Weekly trend"):
                st.vega_lite_chart(spec=charts["weekly_line"], use_container_width=True)

    if payload["groups"] is not None:
        groups = pd.DataFrame(payload["groups"])
        groups["tickets"] = groups["tickets"].apply(", ".join)
        groups["statuses"] = groups["statuses"].apply(", ".join)
        with panel("Tasks"):
            st.dataframe(
                groups[["task", "count", "time_spent", "total_productive_hours", "avg_productive_hours", "tickets", "statuses", "first_date", "last_date"]],
                hide_index=True,
            )
    else:
        with panel("Entries"):
            st.dataframe(pd.DataFrame(payload["rows"])[RECORD_COLUMNS], hide_index=True)


page = st.radio("Page", ["Report", "Developer Performance"], index=0, horizontal=True, label_visibility="collapsed")
if page == "Report":
    render_report_page()
else:
    render_performance_page()
