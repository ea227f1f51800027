"""
Mr. Car Wash staff console: Streamlit UI entry point.
"""

import streamlit as st

# Load .env first so MRCARWASH_* settings are visible to everything below
from mrcarwash.utils.config import load_config, api_base_url, log_level, log_file
load_config()

from mrcarwash.domains.errors import CarWashError
from mrcarwash.infrastructure.api import ApiClient
from mrcarwash.infrastructure.repositories import build_repositories
from mrcarwash.services.assignment_coordinator import AssignmentCoordinator
from mrcarwash.services.invoice_generator import InvoiceGenerator
from mrcarwash.services.locks import VehicleLocks
from mrcarwash.ui.screens import SNAPSHOT_KEY, refresh, render_clients_and_vehicles, render_services_screen
from mrcarwash.ui.view_models import error_message, fetch_snapshot
from mrcarwash.utils.logger import setup_logger, get_logger

setup_logger(level=log_level(), log_file=log_file())
log = get_logger()

st.set_page_config(page_title="Mr. Car Wash", layout="wide")
st.title("Mr. Car Wash")


# One set of repositories and one lock table per server process, shared by all sessions
@st.cache_resource
def get_workflow():
    repos = build_repositories(ApiClient())
    locks = VehicleLocks()
    return (
        repos,
        AssignmentCoordinator(repos.assignments, locks=locks),
        InvoiceGenerator(repos, locks=locks),
    )


repos, coordinator, generator = get_workflow()

with st.sidebar:
    st.header("Conexión")
    st.caption(f"API: `{api_base_url()}`")
    if st.button("Actualizar datos"):
        refresh()

if SNAPSHOT_KEY not in st.session_state:
    try:
        with st.spinner("Cargando datos..."):
            st.session_state[SNAPSHOT_KEY] = fetch_snapshot(repos)
    except CarWashError as e:
        log.exception("Loading data failed")
        st.error(error_message(e))
        st.stop()

snapshot = st.session_state[SNAPSHOT_KEY]

tab_clients, tab_services = st.tabs(["Clientes y Vehículos", "Servicios"])
with tab_clients:
    render_clients_and_vehicles(snapshot, repos, coordinator, generator)
with tab_services:
    render_services_screen(snapshot, repos, generator)
