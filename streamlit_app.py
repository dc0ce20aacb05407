from pathlib import Path
import sys

# Ensure project root is on sys.path for module imports in various runtimes
_APP_DIR = Path(__file__).parent
if str(_APP_DIR) not in sys.path:
    sys.path.insert(0, str(_APP_DIR))

import logging
import os

import numpy as np
import streamlit as st

from bedrock_chat import OFFLINE_RESPONSE, WELCOME_MESSAGE, handle_chat, pick_fallback_response
from config import (
    DEFAULT_FORECAST_MONTHS,
    DEFAULT_HISTORY_MONTHS,
    DEFAULT_SCENARIO,
    DEFAULT_TEST_PERIODS,
    EXPORT_FILE_NAME,
    SLIDER_RANGES,
)
from data_io import DataError, export_csv, frame_to_raw_points, load_data_with_checklist
from data_utils import normalize
from plot_utils import create_accuracy_table, create_forecast_plot, create_results_table
from sagemaker_jobs import handle_forecast_action
from s3_storage import check_aws_connectivity
from ts_core import InvalidArgument, ScenarioParameters, evaluate, generate_forecast, generate_historical

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("streamlit_app")

st.set_page_config(
    page_title="Retail Demand Forecasting",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded"
)


def _new_seed() -> int:
    return int(np.random.default_rng().integers(0, 2**31 - 1))


def _reset_history(seed: int):
    st.session_state["seed"] = seed
    st.session_state["history"] = generate_historical(DEFAULT_HISTORY_MONTHS, random_state=seed)
    st.session_state["data_source"] = "synthetic"
    st.session_state["test_results"] = None


def _render_checklist(items):
    for status, text in items:
        icon = "✅" if status == "ok" else ("⚠️" if status == "warning" else "❌")
        st.markdown(f"<div style='margin:2px 0; line-height:1.2'>{icon} {text}</div>", unsafe_allow_html=True)


# Session defaults
if "history" not in st.session_state:
    _reset_history(_new_seed())
for _key, _default in [
    ("test_results", None),
    ("import_error", None),
    ("api_error", None),
    ("job_name", None),
    ("endpoint_info", None),
    ("endpoint_forecast", None),
    ("chat_messages", [{"role": "assistant", "content": WELCOME_MESSAGE}]),
    ("chat_offline", False),
]:
    if _key not in st.session_state:
        st.session_state[_key] = _default

# -----------------------------
# Sidebar: scenario parameters
# -----------------------------
st.sidebar.markdown("<div style='font-weight:600; margin:6px 0 12px 0; text-align:center; font-size:18px'>Scenario Parameters</div>", unsafe_allow_html=True)

seasonality_pct = st.sidebar.slider("Seasonality (%)", *SLIDER_RANGES["seasonality"], value=int(DEFAULT_SCENARIO[0] * 100))
trend_pct = st.sidebar.slider("Trend (% per month)", *SLIDER_RANGES["trend"], value=int(DEFAULT_SCENARIO[1] * 100))
noise_pct = st.sidebar.slider("Noise (%)", *SLIDER_RANGES["noise"], value=int(DEFAULT_SCENARIO[2] * 100))
forecast_months = st.sidebar.slider("Forecast months", 1, 24, value=DEFAULT_FORECAST_MONTHS)
test_periods = st.sidebar.slider("Test periods", *SLIDER_RANGES["test_periods"], value=DEFAULT_TEST_PERIODS)

params = ScenarioParameters.from_percentages(seasonality_pct, trend_pct, noise_pct)

if st.sidebar.button("Generate new data", use_container_width=True):
    _reset_history(_new_seed())
    st.session_state["import_error"] = None

# Data import
st.sidebar.markdown("<div style='font-weight:600; margin:12px 0 6px 0; text-align:center'>Import Data</div>", unsafe_allow_html=True)
uploaded = st.sidebar.file_uploader(
    "Upload a CSV or Excel file (date column first, value last, < 1MB)",
    type=["csv", "xlsx", "xls"],
    accept_multiple_files=False,
    help="Dates are resampled to monthly cadence: months with several rows are averaged, missing months interpolated.",
)
if uploaded is not None and st.session_state.get("imported_file") != uploaded.name:
    raw_df, file_info = load_data_with_checklist(uploaded)
    with st.sidebar:
        _render_checklist(file_info.get("checklist", []))
    try:
        st.session_state["history"] = normalize(frame_to_raw_points(raw_df, file_info))
        st.session_state["data_source"] = uploaded.name
        st.session_state["test_results"] = None
        st.session_state["import_error"] = None
        logger.info("Imported %d monthly points from %s", len(st.session_state["history"]), uploaded.name)
    except (DataError, InvalidArgument) as e:
        st.session_state["import_error"] = f"Error processing data: {e}"
    st.session_state["imported_file"] = uploaded.name

history = st.session_state["history"]

# Forecast follows the parameters on every rerun; seeded so a rerun without changes is stable
try:
    forecast = generate_forecast(history, forecast_months, params, random_state=st.session_state["seed"])
except InvalidArgument as e:
    forecast = []
    st.session_state["import_error"] = f"Error generating forecast: {e}"

st.sidebar.markdown("<div style='font-weight:600; margin:12px 0 6px 0; text-align:center'>Result</div>", unsafe_allow_html=True)
st.sidebar.download_button(
    label="Export data as CSV",
    data=export_csv(history, forecast).encode("utf-8"),
    file_name=EXPORT_FILE_NAME,
    mime="text/csv",
    use_container_width=True,
)

# -----------------------------
# Main screen
# -----------------------------
st.markdown("<div style='font-weight:600; margin:12px 0 18px 0; text-align:center; font-size:24px'>Retail Demand Forecasting</div>", unsafe_allow_html=True)

forecast_tab, automl_tab, chat_tab = st.tabs(["Forecast", "AutoML", "Assistant"])

with forecast_tab:
    if st.session_state["import_error"]:
        st.error(st.session_state["import_error"])

    st.caption(f"Data source: {st.session_state['data_source']} · {len(history)} months of history, {len(forecast)} months forecast")
    view_mode = st.radio("View", ["Chart", "Table"], horizontal=True, label_visibility="collapsed")
    if view_mode == "Chart":
        fig = create_forecast_plot(history, forecast)
        st.pyplot(fig)
    else:
        st.dataframe(create_results_table(history, forecast), use_container_width=True, hide_index=True)

    if st.button("Test forecast accuracy"):
        try:
            with st.spinner("Backtesting scenario..."):
                st.session_state["test_results"] = evaluate(
                    history, forecast, test_periods, params, random_state=st.session_state["seed"]
                )
        except InvalidArgument as e:
            st.session_state["test_results"] = None
            st.error(f"Error testing forecast: {e}")

    results = st.session_state["test_results"]
    if results is not None:
        st.markdown("**Test results**")
        c1, c2, c3 = st.columns(3)
        c1.metric("MAPE", f"{results.mape:.2f}%")
        c2.metric("RMSE", f"{results.rmse:.2f}")
        c3.metric("Accuracy", f"{results.accuracy:.2f}%")
        st.dataframe(create_accuracy_table(results), use_container_width=True, hide_index=True)


def _call_action(action, data):
    payload, status = handle_forecast_action(action, data)
    if status != 200:
        st.session_state["api_error"] = f"{payload.get('error')}: {payload.get('details', '')}"
        return None
    st.session_state["api_error"] = None
    return payload


with automl_tab:
    if st.session_state["api_error"]:
        st.error(st.session_state["api_error"])

    col_job, col_endpoint = st.columns(2)
    with col_job:
        st.markdown("**AutoML job**")
        if st.button("Create AutoML job"):
            with st.spinner("Creating job..."):
                payload = _call_action("create_job", {"historicalData": history})
            if payload:
                st.session_state["job_name"] = payload["jobName"]
        job_name = st.session_state["job_name"]
        if job_name:
            status = _call_action("get_job_status", {"jobName": job_name})
            if status:
                st.write(f"Job `{job_name}`: **{status.get('status')}**")
                metric = ((status.get("bestCandidate") or {}).get("FinalAutoMLJobObjectiveMetric") or {})
                if metric:
                    st.write(f"Best candidate {metric.get('MetricName')}: {metric.get('Value')}")
            if st.button("Deploy best model"):
                st.session_state["endpoint_info"] = _call_action("deploy_model", {"jobName": job_name})

    with col_endpoint:
        st.markdown("**Endpoint**")
        endpoint_info = st.session_state["endpoint_info"]
        if endpoint_info:
            status = _call_action("get_endpoint_status", {"endpointName": endpoint_info["endpointName"]})
            if status:
                st.write(f"Endpoint `{endpoint_info['endpointName']}`: **{status.get('status')}**")
            if st.button("Get forecast from endpoint"):
                with st.spinner("Generating forecast..."):
                    payload = _call_action("get_forecast", {
                        "endpointName": endpoint_info["endpointName"],
                        "historicalData": history,
                        "forecastHorizon": DEFAULT_FORECAST_MONTHS,
                    })
                if payload:
                    st.session_state["endpoint_forecast"] = payload["forecast"]
            if st.button("Clean up resources"):
                if _call_action("cleanup_resources", endpoint_info):
                    st.session_state["endpoint_info"] = None
                    st.session_state["endpoint_forecast"] = None
        else:
            st.caption("Deploy a model to get an endpoint.")

    if st.session_state["endpoint_forecast"]:
        fig = create_forecast_plot(history, st.session_state["endpoint_forecast"], title="Endpoint forecast")
        st.pyplot(fig)

    with st.expander("AWS connectivity"):
        if st.button("Test AWS connection"):
            st.json(check_aws_connectivity())


with chat_tab:
    if st.session_state["chat_offline"]:
        st.warning("Connected in offline mode due to backend service issues. Using pre-defined responses.")
    for message in st.session_state["chat_messages"]:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    prompt = st.chat_input("Ask about SageMaker Autopilot...")
    if prompt:
        st.session_state["chat_messages"].append({"role": "user", "content": prompt})
        with st.chat_message("user"):
            st.markdown(prompt)
        with st.chat_message("assistant"):
            if st.session_state["chat_offline"]:
                reply = pick_fallback_response()
            else:
                with st.spinner("Thinking..."):
                    reply = handle_chat({"messages": st.session_state["chat_messages"]})["response"]
                st.session_state["chat_offline"] = reply == OFFLINE_RESPONSE
            st.markdown(reply)
        st.session_state["chat_messages"].append({"role": "assistant", "content": reply})
