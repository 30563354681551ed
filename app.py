"""
app.py - minimal entrypoint for Streamlit app

Keep this file tiny so streamlit can import it without side-effects.
Run the app with:
    streamlit run app.py

This module copies Streamlit secrets into environment variables (read by
spendtrack.config) and then delegates to spendtrack.ui.dashboard.main().
"""
import json
import os

import streamlit as st
from streamlit.errors import StreamlitAPIException

from spendtrack.ui import dashboard

_SECRET_KEYS = ("GOOGLE_SHEET_ID", "GOOGLE_SERVICE_ACCOUNT_JSON", "GOOGLE_SERVICE_ACCOUNT_FILE", "SPENDTRACK_DATA_FILE")


def _export_secrets():
    try:
        secrets = dict(st.secrets)
    except (FileNotFoundError, StreamlitAPIException):
        # no secrets.toml: local run configured through the environment
        return
    for key in _SECRET_KEYS:
        if secrets.get(key) and key not in os.environ:
            os.environ[key] = str(secrets[key])
    # Also support the standard Streamlit table-style service account secret:
    # [gcp_service_account] ...fields...
    if "GOOGLE_SERVICE_ACCOUNT_JSON" not in os.environ and secrets.get("gcp_service_account"):
        os.environ["GOOGLE_SERVICE_ACCOUNT_JSON"] = json.dumps(dict(secrets["gcp_service_account"]))


def main():
    _export_secrets()
    dashboard.main()


if __name__ == "__main__":
    main()
