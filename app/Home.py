from __future__ import annotations
import atexit
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pandas as pd
import streamlit as st

from matprice.config import get_settings
from matprice.context import AppContext
from matprice.schemas import ALL_CATEGORIES, CATEGORIES, UNITS, Material
from matprice.tracker import MaterialTracker

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="Industrial Prices",
    page_icon="📈",
    layout="wide",
)


@st.cache_resource(show_spinner=False)
def load_context() -> AppContext:
    ctx = AppContext.from_settings(get_settings()).open()
    atexit.register(ctx.close)
    return ctx


def get_tracker() -> MaterialTracker:
    tracker = st.session_state.get("tracker")
    if tracker is None:
        tracker = MaterialTracker(load_context()).start()
        st.session_state["tracker"] = tracker
    return tracker


tracker = get_tracker()
tracker.pump()


def _format_price(price: float) -> str:
    return f"${price:,.2f}"


def _format_created(material: Material) -> str:
    if not material.is_synced:
        return "Syncing..."
    return material.created_at.astimezone().strftime("%Y-%m-%d")


def _submit_draft(nonce: int) -> None:
    for field in ("name", "price", "unit", "category"):
        tracker.form.update(field, st.session_state[f"draft_{field}_{nonce}"])
    if tracker.submit():
        # fresh widget keys -> inputs come back with the draft defaults
        st.session_state["form_nonce"] = nonce + 1


def _materials_frame(materials: list[Material]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "name": m.name,
                "category": m.category,
                "price": m.price,
                "unit": m.unit,
                "created": _format_created(m),
                "id": m.id,
            }
            for m in materials
        ],
        columns=["name", "category", "price", "unit", "created", "id"],
    )
    return df


# =========================================================
# Header
# =========================================================
head_left, head_right = st.columns([3, 1])
with head_left:
    st.title("Industrial Prices 📈")
    st.caption("Cost tracking for supplies and materials")
with head_right:
    if tracker.identity:
        st.markdown(f"🟢 User: `{tracker.identity.uid}`")
    else:
        st.markdown("⚪ Not signed in")

with st.sidebar:
    st.header("Session", divider=True)
    if tracker.identity:
        st.button("Sign out", on_click=tracker.session.sign_out, use_container_width=True)
    else:
        st.button("Sign in", on_click=tracker.start, use_container_width=True)
    view_mode = st.radio("View", ["Cards", "Table"], horizontal=True, key="view_mode")
    st.caption(f"Collection: `{tracker.ctx.materials_path}`")

form_col, list_col = st.columns([1, 2], gap="large")

# =========================================================
# New record form
# =========================================================
with form_col:
    nonce = st.session_state.setdefault("form_nonce", 0)
    draft = tracker.form.draft
    with st.form(f"new_material_{nonce}", border=True):
        st.subheader("➕ New record")
        st.text_input(
            "Material name",
            value=draft.name,
            placeholder="e.g. Stainless Steel 304",
            key=f"draft_name_{nonce}",
        )
        price_col, unit_col = st.columns(2)
        with price_col:
            st.text_input("Price ($)", value=draft.price, placeholder="0.00", key=f"draft_price_{nonce}")
        with unit_col:
            st.selectbox("Unit", UNITS, index=UNITS.index(draft.unit), key=f"draft_unit_{nonce}")
        st.selectbox(
            "Category",
            CATEGORIES,
            index=CATEGORIES.index(draft.category),
            key=f"draft_category_{nonce}",
        )
        st.form_submit_button(
            "Save material",
            type="primary",
            use_container_width=True,
            on_click=_submit_draft,
            args=(nonce,),
        )


# =========================================================
# Live records
# =========================================================
@st.fragment(run_every=settings.refresh_seconds)
def live_records() -> None:
    tracker.pump()

    if tracker.errors:
        banner, dismiss = st.columns([12, 1])
        with banner:
            st.error(tracker.errors.message, icon="⚠️")
        with dismiss:
            st.button("×", key="dismiss_error", on_click=tracker.dismiss_error)

    if tracker.loading:
        st.info("Loading industrial database...", icon="⏳")
        return

    summary = tracker.summary
    stat1, stat2 = st.columns(2)
    with stat1:
        st.metric("Total items", summary.total_items)
    with stat2:
        st.metric("Categories", summary.category_count)

    search_col, filter_col = st.columns([2, 1])
    with search_col:
        st.text_input(
            "Search",
            placeholder="Search material...",
            key="search_term",
            on_change=lambda: tracker.set_search(st.session_state["search_term"]),
            label_visibility="collapsed",
        )
    with filter_col:
        st.selectbox(
            "Category",
            (ALL_CATEGORIES, *CATEGORIES),
            format_func=lambda c: "All categories" if c == ALL_CATEGORIES else c,
            key="filter_category",
            on_change=lambda: tracker.set_category(st.session_state["filter_category"]),
            label_visibility="collapsed",
        )

    visible = tracker.visible
    if not visible:
        with st.container(border=True):
            st.markdown("#### No records found")
            st.caption("Try adjusting the filters or add a new one")
        return

    if view_mode == "Table":
        st.dataframe(
            _materials_frame(visible),
            hide_index=True,
            use_container_width=True,
            column_config={
                "price": st.column_config.NumberColumn("price", format="$%.2f"),
                "id": None,
            },
        )
        return

    columns = st.columns(2)
    for idx, material in enumerate(visible):
        with columns[idx % 2]:
            with st.container(border=True):
                title, action = st.columns([5, 1])
                with title:
                    st.markdown(f"📦 **{material.name}**")
                    st.caption(material.category.upper())
                with action:
                    st.button(
                        "🗑️",
                        key=f"delete_{material.id}",
                        help="Delete record",
                        on_click=tracker.delete,
                        args=(material.id,),
                    )
                st.markdown(f"### {_format_price(material.price)} <small>/ {material.unit}</small>", unsafe_allow_html=True)
                st.caption(_format_created(material))


with list_col:
    live_records()
