"""Rainfall Data Retriever — Streamlit app for simulated precipitation-frequency estimates."""

import asyncio
import html

import streamlit as st
from dotenv import load_dotenv
from streamlit_folium import st_folium
from streamlit_js_eval import streamlit_js_eval

load_dotenv()

from rainfallretriever.config import configure_logging, load_settings  # noqa: E402
from rainfallretriever.geocoding import make_geocoder  # noqa: E402
from rainfallretriever.i18n import t  # noqa: E402
from rainfallretriever.map_surface import MapSurface  # noqa: E402
from rainfallretriever.models import InputMode, Phase, TableKind  # noqa: E402
from rainfallretriever.orchestrator import RetrievalOrchestrator  # noqa: E402
from rainfallretriever.presentation import (  # noqa: E402
    csv_filename,
    error_message,
    table_frame,
    to_csv,
)
from rainfallretriever.rainfall import RainfallClient  # noqa: E402
from rainfallretriever.renderers.folium_map import build_folium_map  # noqa: E402
from rainfallretriever.renderers.plotly_idf import render_idf_chart  # noqa: E402

# --- Language detection (browser-first via streamlit-js-eval) ---
# navigator.language is read once and cached in session_state.
# The first run gets None; the rerun triggered by streamlit_js_eval fills it in.
if "lang" not in st.session_state:
    _browser_lang: str | None = streamlit_js_eval(
        js_expressions="navigator.language", key="_lang_detect", height=0
    )
    if _browser_lang is not None:
        st.session_state.lang = "es" if _browser_lang.lower().startswith("es") else "en"

_lang: str = st.session_state.get("lang", "en")

st.set_page_config(
    page_title=t("page_title", _lang),
    page_icon="🌧",
    layout="wide",
)

st.markdown(
    """
    <style>
    iframe[src*="streamlit_js_eval"] { display: none !important; }
    .map-hint { text-align: center; font-size: 0.75rem; color: #64748b; margin-top: 0.3rem; }
    .app-footer { text-align: center; font-size: 0.8rem; color: #64748b; margin-top: 2rem; }
    </style>
    """,
    unsafe_allow_html=True,
)

# --- Session state initialization ---
# The orchestrator and the mounted map surface live for the whole session.
if "orchestrator" not in st.session_state:
    _settings = load_settings()
    configure_logging(_settings.log_level)
    st.session_state.settings = _settings
    st.session_state.orchestrator = RetrievalOrchestrator(
        geocoder=make_geocoder(_settings),
        rainfall_client=RainfallClient(
            api_key=_settings.anthropic_api_key,
            model=_settings.model,
            max_tokens=_settings.max_tokens,
        ),
    )
if "map_surface" not in st.session_state:
    st.session_state.map_surface = MapSurface(
        st.session_state.orchestrator,
        radius_scale=st.session_state.settings.radius_scale,
    ).mount()

orchestrator: RetrievalOrchestrator = st.session_state.orchestrator
surface: MapSurface = st.session_state.map_surface

# --- Widget → form (user edits from the previous interaction) ---
# Widgets that were not rendered last run have no key, so fall back to the form.
orchestrator.set_latitude(st.session_state.get("lat_input", orchestrator.form.latitude))
orchestrator.set_longitude(st.session_state.get("lon_input", orchestrator.form.longitude))
orchestrator.set_address(st.session_state.get("address_input", orchestrator.form.address))
orchestrator.set_mode(st.session_state.get("mode_input", orchestrator.form.mode))

# --- Form → widget (map clicks and geocoding write into the form) ---
st.session_state.lat_input = orchestrator.form.latitude
st.session_state.lon_input = orchestrator.form.longitude
st.session_state.address_input = orchestrator.form.address
st.session_state.mode_input = orchestrator.form.mode

st.title(t("page_title", _lang))
st.caption(t("subtitle", _lang))

form_col, map_col = st.columns([2, 3], gap="large")

with form_col:
    st.radio(
        "mode",
        options=[InputMode.COORDS, InputMode.ADDRESS],
        format_func=lambda m: t("tab_coords" if m is InputMode.COORDS else "tab_address", _lang),
        horizontal=True,
        label_visibility="collapsed",
        key="mode_input",
    )
    if st.session_state.mode_input is InputMode.COORDS:
        st.text_input(t("label_latitude", _lang), placeholder="e.g., 32.2226", key="lat_input")
        st.text_input(t("label_longitude", _lang), placeholder="e.g., -110.9747", key="lon_input")
    else:
        st.text_input(
            t("label_address", _lang),
            placeholder=t("placeholder_address", _lang),
            key="address_input",
        )

    loading = orchestrator.state.is_loading
    submitted = st.button(
        t("btn_fetching" if loading else "btn_fetch", _lang),
        key="submit_btn",
        disabled=loading,
        use_container_width=True,
        type="primary",
    )

with map_col:
    view = surface.view
    # Remount the map whenever the view changes so marker/overlay always refresh
    map_data = st_folium(
        build_folium_map(view),
        key=f"rainfall_map_{view.revision}",
        height=420,
        use_container_width=True,
        returned_objects=["last_clicked", "last_active_drawing", "all_drawings"],
    )
    st.markdown(f"<div class='map-hint'>{t('map_hint', _lang)}</div>", unsafe_allow_html=True)

if surface.handle_event(map_data):
    st.rerun()

# --- Form submission handler ---
if submitted:
    with st.spinner(t("loading", _lang)):
        asyncio.run(orchestrator.submit())
    st.rerun()

# --- Results / error / info ---
state = orchestrator.state

if state.phase is Phase.FAILED and state.error is not None:
    st.error(f"**{t('error_prefix', _lang)}** {html.escape(error_message(state.error, _lang))}")

if state.phase is Phase.SUCCESS and state.dataset is not None:
    form = orchestrator.form
    st.subheader(t("results_title", _lang))
    tabs = st.tabs([t("table_intensity", _lang), t("table_depth", _lang)])
    for tab, kind in zip(tabs, (TableKind.INTENSITY, TableKind.DEPTH)):
        with tab:
            st.caption(
                t("results_caption", _lang).format(
                    title=t(f"table_{kind.value}", _lang),
                    unit=kind.unit,
                    lat=form.latitude,
                    lon=form.longitude,
                )
            )
            st.download_button(
                t("btn_download", _lang),
                data=to_csv(state.dataset, kind),
                file_name=csv_filename(kind, form.latitude, form.longitude),
                mime="text/csv",
                key=f"download_{kind.value}",
            )
            st.dataframe(table_frame(state.dataset, kind), hide_index=True, use_container_width=True)
            st.plotly_chart(
                render_idf_chart(state.dataset, kind),
                use_container_width=True,
                config={"displayModeBar": False},
            )
elif state.phase is Phase.IDLE:
    st.info(t("info", _lang))

st.markdown(f"<div class='app-footer'>© {t('footer', _lang)}</div>", unsafe_allow_html=True)
