import pandas as pd
import streamlit as st
from typing import Dict, List, Optional

from core.config import (
    AMOUNT_DOMAIN,
    CATEGORICAL_FILTERS,
    FILTERABLE_COLUMNS,
    GAP_COL_DEFAULT,
    GAP_ROW_DEFAULT,
    YEAR_DOMAIN,
)
from core.data import grants_frame, load_explorer_data
from core.filters import ExplorerState, Range, normalize_filters, reset_state
from core.metrics_gaps import compute_gap_finder
from core.query import evaluate_prepared, format_usd, parse_amount


SHEET_COLUMNS = ["Project Title", "Fiscal Year", "Agency", "Amount"]
ABSTRACT_PREVIEW = 240


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .grant-card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 14px;background: #ffffff;
                     box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 10px;}
        .grant-card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .grant-card-meta {color: #6b7280;font-size: 0.85rem;margin: 4px 0;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


def widget_key(name: str) -> str:
    return f"{name}_{st.session_state.get('reset_nonce', 0)}"


def on_reset():
    state = reset_state()
    st.session_state["q"] = state.query
    # New widget keys force sliders and multiselects back to their defaults.
    st.session_state["reset_nonce"] = st.session_state.get("reset_nonce", 0) + 1


def format_filter_summary(state: ExplorerState) -> str:
    chips = []
    for column, selected in state.filters.selections():
        if selected:
            chips.append(f"{column}: {', '.join(selected)}")
    if state.filters.fiscal_year is not None:
        rng = state.filters.fiscal_year
        chips.append(f"Year: {int(rng.min)}–{int(rng.max)}")
    if state.filters.amount_usd is not None:
        rng = state.filters.amount_usd
        chips.append(f"Funding: {format_usd(rng.min)}–{format_usd(rng.max)}")
    if state.query.strip():
        chips.append(f"Search: {state.query.strip()}")
    if not chips:
        chips = ["All grants"]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def range_slider(label: str, domain, name: str, fmt: Optional[str] = None) -> Optional[Range]:
    lo, hi, step = domain
    picked = st.slider(label, min_value=lo, max_value=hi, value=(lo, hi), step=step, format=fmt, key=widget_key(name))
    if tuple(picked) == (lo, hi):
        return None
    return Range(*picked)


def render_sheet(grants: List[Dict[str, object]]):
    df = grants_frame(grants)
    for col in SHEET_COLUMNS:
        if col not in df.columns:
            df[col] = None
    view = df[SHEET_COLUMNS].copy()
    view["Amount"] = view["Amount"].apply(lambda v: format_usd(parse_amount(v) or 0) if v is not None and v != "" else "—")
    st.dataframe(view, hide_index=True, use_container_width=True)


def render_cards(grants: List[Dict[str, object]]):
    for g in grants:
        title = g.get("Project Title") or "(untitled)"
        meta = [str(g.get("Fiscal Year") or "—"), str(g.get("Agency") or "—")]
        if g.get("Amount") not in (None, ""):
            meta.append(format_usd(parse_amount(g.get("Amount")) or 0))
        abstract = str(g.get("Project Abstract") or "")
        if len(abstract) > ABSTRACT_PREVIEW:
            abstract = abstract[:ABSTRACT_PREVIEW] + "…"
        st.markdown(
            f"<div class='grant-card'><div class='grant-card-title'>{title}</div>"
            f"<div class='grant-card-meta'>{' • '.join(meta)}</div><div>{abstract}</div></div>",
            unsafe_allow_html=True,
        )


# ---------- UI setup ----------
st.set_page_config(page_title="SCI Data Explorer", layout="wide")
inject_base_styles()
st.title("SCI Data Explorer")

try:
    data_ctx = load_explorer_data()
except (FileNotFoundError, ValueError) as exc:
    st.error(f"Error: {exc}. Run `build-data <export.xlsx>` first.")
    st.stop()

grants = data_ctx["grants"]
options: Dict[str, List[str]] = data_ctx["options"]
prepared = data_ctx["prepared"]

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    raw_filters: Dict[str, object] = {}
    for name, column in CATEGORICAL_FILTERS.items():
        raw_filters[name] = st.multiselect(column, options=options.get(column, []), default=[], key=widget_key(name))
    raw_filters["fiscal_year"] = range_slider("Year", YEAR_DOMAIN, "fiscal_year")
    raw_filters["amount_usd"] = range_slider("Funding", AMOUNT_DOMAIN, "amount_usd", fmt="$%d")

    st.markdown("---")
    st.button("Reset", on_click=on_reset)

query = st.text_input("Search titles, abstracts, orgs, PIs...", key="q")
state = ExplorerState(filters=normalize_filters(raw_filters), query=query)
result = evaluate_prepared(prepared, state.filters, state.query)

tab_explorer, tab_gaps = st.tabs(["Explorer", "Gap Finder"])

with tab_explorer:
    c1, c2, c3 = st.columns([3, 3, 2])
    c1.metric("Matches", f"{result.matches:,} of {len(grants):,}")
    c2.metric("Total funding", result.total_funding_display)
    with c3:
        view_mode = st.radio("View", ["Sheet", "Cards"], horizontal=True)
        st.download_button(
            "Download",
            data=grants_frame(result.grants).to_csv(index=False).encode("utf-8"),
            file_name="grants.csv",
            mime="text/csv",
        )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(state)}</div>", unsafe_allow_html=True)

    if view_mode == "Sheet":
        render_sheet(result.grants)
    else:
        render_cards(result.grants)

with tab_gaps:
    g1, g2, g3 = st.columns(3)
    row_column = g1.selectbox("Rows", FILTERABLE_COLUMNS, index=FILTERABLE_COLUMNS.index(GAP_ROW_DEFAULT))
    col_column = g2.selectbox("Columns", FILTERABLE_COLUMNS, index=FILTERABLE_COLUMNS.index(GAP_COL_DEFAULT))
    metric = g3.radio("Shade by", ["grants", "funding"], horizontal=True)
    gaps = compute_gap_finder(prepared, state.filters, state.query, row_column=row_column, col_column=col_column, metric=metric)
    if not gaps["cells"]:
        st.info("No grants match the current filters.")
    else:
        st.vega_lite_chart(gaps["charts"]["heatmap"], use_container_width=True)
        st.dataframe(pd.DataFrame(gaps["cells"]), hide_index=True, use_container_width=True)
