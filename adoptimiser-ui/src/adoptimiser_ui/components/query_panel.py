"""
Query results panel: one tab per query execution.
"""

import json
from typing import Any

import pandas as pd
import streamlit as st

from adoptimiser_ui.core.state import QueryExecution, RunStatus
from adoptimiser_ui.services.queries import QueryRunTracker


def _cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return value


def records_to_frame(records: list[dict[str, Any]] | None) -> pd.DataFrame:
    """
    Builds a table from normalized query records.

    Columns follow the keys of the first record; nested values (nodes,
    relationships, lists) are shown as JSON text.
    """
    if not records:
        return pd.DataFrame()
    columns = list(records[0].keys())
    rows = [{column: _cell(record.get(column)) for column in columns} for record in records]
    return pd.DataFrame(rows, columns=columns)


def _tab_label(index: int, execution: QueryExecution) -> str:
    icon = {"pending": "⏳", "success": "✅", "error": "❌"}[execution.status.value]
    return f"{icon} Query {index + 1}"


def _render_execution(execution: QueryExecution) -> None:
    st.code(execution.query, language="cypher")
    if execution.status is RunStatus.PENDING:
        st.info("Running query...")
    elif execution.status is RunStatus.ERROR:
        st.error(execution.error_details or "Query failed.")
    elif not execution.records:
        st.caption("No data to display or query did not return results.")
    else:
        st.dataframe(records_to_frame(execution.records), use_container_width=True, hide_index=True)
        st.caption(f"{len(execution.records)} rows")


def render_query_panel(tracker: QueryRunTracker) -> None:
    """Renders the query panel when it is visible."""
    if not tracker.panel_visible:
        return
    executions = tracker.executions

    header_col, toggle_col, clear_col = st.columns([4, 1, 1])
    header_col.subheader("📊 Query Results")
    if toggle_col.button("Expand" if tracker.panel_collapsed else "Collapse", key="query-panel-toggle"):
        tracker.toggle_collapsed()
        st.rerun()
    if clear_col.button("Clear", key="query-panel-clear"):
        tracker.clear()
        st.rerun()

    if tracker.panel_collapsed or not executions:
        return

    tabs = st.tabs([_tab_label(index, execution) for index, execution in enumerate(executions)])
    for tab, execution in zip(tabs, executions):
        with tab:
            _render_execution(execution)
