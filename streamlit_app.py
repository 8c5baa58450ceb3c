# streamlit_app.py
# Civic Issue Reporter (Streamlit front end)
# - Public page: capture a photo, optionally record a voice note, pick a category, submit a geotagged report
# - Admin dashboard (mock login): live list of reports, tab filter, counts and charts, triage and delete
# - Report details: photo, audio, time, map and status controls
# Reports are kept in data/reports.json and shared by every open browser session.

import pandas as pd
import streamlit as st

from issue_reporter import config
from issue_reporter.auth import AuthGuard
from issue_reporter.dashboard import Dashboard, status_chart, type_chart
from issue_reporter.form import ReportForm, ValidationError
from issue_reporter.geolocation import DeniedGeolocator, FixedGeolocator, IPGeolocator
from issue_reporter.media import MediaError, audio_from_upload, image_from_upload, parse_data_url
from issue_reporter.storage import FileStorage, SessionStorage
from issue_reporter.store import ReportStore, parse_timestamp

st.set_page_config(page_title=config.APP_TITLE, page_icon="📍", layout="wide")

LOCATION_MODES = ["Detect automatically", "Enter coordinates", "Don't share"]


# ---------------- SHARED RESOURCES ----------------
@st.cache_resource
def get_store():
    return ReportStore(FileStorage(config.DATA_DIR))


store = get_store()
auth = AuthGuard(SessionStorage(st.session_state))

# ---------------- SESSION STATE ----------------
if 'report_form' not in st.session_state:
    st.session_state.report_form = ReportForm(store, IPGeolocator(config.GEOLOCATION_URL))
if 'dashboard' not in st.session_state:
    st.session_state.dashboard = Dashboard(store, poll_interval=config.POLL_INTERVAL)
    st.session_state.dashboard.watch()
if 'form_nonce' not in st.session_state:
    st.session_state.form_nonce = 0
if 'selected_report' not in st.session_state:
    st.session_state.selected_report = None
if 'confirm_delete' not in st.session_state:
    st.session_state.confirm_delete = None
if 'flash' not in st.session_state:
    st.session_state.flash = []


# ---------------- UI HELPERS ----------------

def render_header():
    st.title(f"📍 {config.APP_TITLE}")
    st.caption(config.APP_SUB)


def flash(kind, message):
    st.session_state.flash.append((kind, message))


def show_flash():
    for kind, message in st.session_state.flash:
        getattr(st, kind)(message)
    st.session_state.flash = []


def format_date(value):
    parsed = parse_timestamp(value)
    if parsed.year == 1:
        return value or "—"
    return parsed.strftime("%Y-%m-%d %H:%M")


def status_label(status):
    return config.STATUS_LABELS.get(status, status)


def show_media(data_url, kind):
    try:
        mime, data = parse_data_url(data_url)
    except MediaError as e:
        st.caption(f"Could not display {kind}: {e}")
        return
    if kind == "image":
        st.image(data)
    else:
        st.audio(data, format=mime)


# ---------------- REPORT ISSUE ----------------

def choose_geolocator(mode, lat, lng):
    if mode == "Enter coordinates":
        return FixedGeolocator(lat, lng)
    if mode == "Don't share":
        return DeniedGeolocator()
    return IPGeolocator(config.GEOLOCATION_URL)


def report_page():
    st.subheader("📝 Report a Civic Issue")
    show_flash()
    form = st.session_state.report_form
    nonce = st.session_state.form_nonce

    source = st.radio("Photo", ["Camera", "Upload"], horizontal=True, key=f"photo_source_{nonce}")
    if source == "Camera":
        photo = st.camera_input("Take a photo of the issue", key=f"camera_{nonce}")
    else:
        photo = st.file_uploader("Upload Image", type=["png", "jpg", "jpeg"], key=f"upload_{nonce}")
    voice = st.audio_input("Voice note (optional)", key=f"audio_{nonce}")
    issue_type = st.selectbox(
        "Issue type (optional)",
        [""] + config.REPORT_TYPES,
        format_func=lambda t: t or "Not specified",
        key=f"type_{nonce}",
    )

    mode = st.radio("Location", LOCATION_MODES, horizontal=True, key=f"location_mode_{nonce}")
    lat = lng = None
    if mode == "Enter coordinates":
        col1, col2 = st.columns(2)
        lat = col1.number_input("Latitude", min_value=-90.0, max_value=90.0, value=0.0, format="%.6f", key=f"lat_{nonce}")
        lng = col2.number_input("Longitude", min_value=-180.0, max_value=180.0, value=0.0, format="%.6f", key=f"lng_{nonce}")

    if not st.button("Submit Report", type="primary"):
        return

    try:
        form.image = image_from_upload(photo)
        form.audio = audio_from_upload(voice)
    except MediaError as e:
        st.error(str(e))
        return
    form.type = issue_type
    form.geolocator = choose_geolocator(mode, lat, lng)

    try:
        with st.spinner("Sending report..."):
            result = form.submit()
    except ValidationError as e:
        st.error(str(e))
        return

    if result.location_message:
        flash("warning", result.location_message)
    flash("success", "✅ Report submitted successfully!")
    st.session_state.form_nonce += 1
    st.rerun()


# ---------------- ADMIN LOGIN ----------------

def login_page():
    st.subheader("🔐 Admin Login")
    with st.form("login_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        if auth.login(username, password):
            st.rerun()
        else:
            st.error("Invalid username or password")


# ---------------- ADMIN DASHBOARD ----------------

def report_row(dashboard, report):
    cols = st.columns([1.2, 1.5, 2, 1.5, 1, 1, 1, 1])
    cols[0].write(f"#{report['id'][-6:]}")
    cols[1].write(report['type'] or "Not specified")
    cols[2].write(format_date(report['created_at']))
    cols[3].write(status_label(report['status']))
    if cols[4].button("View", key=f"view_{report['id']}"):
        st.session_state.selected_report = report['id']
        st.rerun(scope="app")
    if report['status'] != 'resolved':
        if cols[5].button("Resolve", key=f"resolve_{report['id']}"):
            dashboard.set_status(report['id'], 'resolved')
            st.rerun(scope="fragment")
    if report['status'] not in ('in_progress', 'resolved'):
        if cols[6].button("Start", key=f"progress_{report['id']}", help="Mark as in progress"):
            dashboard.set_status(report['id'], 'in_progress')
            st.rerun(scope="fragment")
    if st.session_state.confirm_delete == report['id']:
        if cols[7].button("Confirm", key=f"confirm_{report['id']}", type="primary"):
            dashboard.delete(report['id'])
            st.session_state.confirm_delete = None
            st.rerun(scope="fragment")
    elif cols[7].button("Delete", key=f"delete_{report['id']}"):
        st.session_state.confirm_delete = report['id']
        st.rerun(scope="fragment")


@st.fragment(run_every=config.POLL_INTERVAL)
def reports_panel():
    dashboard = st.session_state.dashboard
    dashboard.refresh_if_due()
    stats = dashboard.stats()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Reports", stats['total'])
    col2.metric("New", stats['new'])
    col3.metric("In Progress", stats['in_progress'])
    col4.metric("Resolved", stats['resolved'])

    st.write("### Problem types")
    if not stats['types']:
        st.info("No reports have been submitted yet.")
    for report_type, count in stats['types'].items():
        share = count / stats['total'] if stats['total'] else 0
        st.progress(share, text=f"{report_type or 'Not specified'}: {count} ({round(share * 100)}% of total)")

    df = dashboard.frame()
    if not df.empty:
        with st.expander("Charts"):
            chart_col1, chart_col2 = st.columns(2)
            chart_col1.plotly_chart(status_chart(df))
            chart_col2.plotly_chart(type_chart(df))

    st.write("### Reports")
    tab = st.radio(
        "Show",
        config.DASHBOARD_TABS,
        format_func=lambda t: "All" if t == "all" else status_label(t),
        horizontal=True,
        key="dashboard_tab",
    )
    dashboard.set_tab(tab)
    visible = dashboard.visible()
    if not visible:
        if tab == "all":
            st.info("No reports have been submitted yet.")
        else:
            st.info(f"No {status_label(tab).lower()} reports at the moment.")
    for report in visible:
        report_row(dashboard, report)

    if not df.empty:
        st.download_button("⬇️ Export Reports CSV", data=df.to_csv(index=False), file_name="reports.csv", mime="text/csv")


def report_details_page(report_id):
    dashboard = st.session_state.dashboard
    if st.button("← Back to dashboard"):
        st.session_state.selected_report = None
        st.rerun()

    report = store.get(report_id)
    if report is None:
        st.error("Report not found")
        return

    st.subheader(f"Report #{report['id'][-6:]}")
    st.write(f"**Status:** {status_label(report['status'])}")
    st.write(f"**Type:** {report['type'] or 'Not specified'}")
    st.write(f"**Submitted:** {format_date(report['created_at'])}")

    if report['image']:
        show_media(report['image'], "image")
    if report['audio']:
        st.write("**Voice note**")
        show_media(report['audio'], "audio")

    if report['location']:
        st.write(f"**Location:** {report['location']['lat']:.6f}, {report['location']['lng']:.6f}")
        st.map(pd.DataFrame([{"lat": report["location"]["lat"], "lon": report["location"]["lng"]}]))
    else:
        st.caption("No location was attached to this report.")

    cols = st.columns(len(config.STATUSES))
    for col, status in zip(cols, config.STATUSES):
        if col.button(status_label(status), key=f"detail_{status}", disabled=report['status'] == status):
            dashboard.set_status(report['id'], status)
            st.rerun()


def dashboard_page():
    user = auth.current_user()
    if not user:
        login_page()
        return

    with st.sidebar:
        st.markdown(f"### 👋 Welcome {user['username']}")
        if st.button("🚪 Logout"):
            auth.logout()
            st.rerun()

    if st.session_state.selected_report:
        report_details_page(st.session_state.selected_report)
        return

    st.subheader("📊 Admin Dashboard")
    reports_panel()


# ---------------- ROUTER ----------------
render_header()
with st.sidebar:
    nav = st.radio("Navigation", ["Report Issue", "Admin Dashboard"])

if nav == "Report Issue":
    report_page()
else:
    dashboard_page()


# ---------------- RUN NOTES ----------------
# 1) install: pip install -e .
# 2) run: streamlit run streamlit_app.py
# Notes:
# - Reports are written to $ISSUE_REPORTER_DATA_DIR/reports.json (default ./data).
# - Admin login defaults to admin / admin123 (ISSUE_REPORTER_ADMIN_USER / ISSUE_REPORTER_ADMIN_PASSWORD).
# - Automatic location uses an IP lookup ($ISSUE_REPORTER_GEO_URL); it approximates the server's network location.
