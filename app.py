# app.py: GameCrafter workflow (Streamlit entrypoint)
from __future__ import annotations

import logging
from pathlib import Path
import sys

import streamlit as st

APP_ROOT = Path(__file__).resolve().parent
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from config import SETTINGS  # noqa: E402
from state import ensure_state  # noqa: E402
from utils.logging_context import configure_logging  # noqa: E402
from utils.telemetry import setup_tracing  # noqa: E402
from wizard.ui import run_workflow  # noqa: E402

APP_VERSION = "0.1.0"

configure_logging(level=logging.DEBUG if SETTINGS.debug else logging.INFO)
setup_tracing()

st.set_page_config(
    page_title="GameCrafter – Game Creation Workflow",
    page_icon="🎰",
    layout="wide",
    initial_sidebar_state="expanded",
)

ensure_state()
st.session_state.setdefault("app_version", APP_VERSION)

st.title("🎰 GameCrafter")

run_workflow()
