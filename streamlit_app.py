import streamlit as st
import requests
import pandas as pd

from users_client import USER_SERVICE, UsersClient, error_message

# ─── Page config ──────────────────────────────────────────────────────────────
st.set_page_config(
    page_title="User Service Console",
    page_icon="👥",
    layout="wide",
)

client = UsersClient(USER_SERVICE)


# ─── Cached API helper ─────────────────────────────────────────────────────────
@st.cache_data(ttl=3)
def load_users() -> list[dict] | None:
    """User list with a 3-second cache to minimise round-trips and reduce flicker."""
    try:
        return client.list_users()
    except requests.RequestException:
        return None


def _after_write(message: str):
    load_users.clear()          # invalidate stale reads after any write
    st.success(message)
    st.rerun()


# ─── Service health gate ──────────────────────────────────────────────────────
if not client.online():
    st.error(f"⚠️ User Service offline at {USER_SERVICE}")
    st.info("""
**Terminal 1:** `python user_service.py`
**Terminal 2:** `streamlit run streamlit_app.py`
    """)
    st.stop()


st.title("👥 Users")

col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("Create New User")
    with st.form("user_form"):
        name  = st.text_input("Full Name",  placeholder="John Doe")
        email = st.text_input("Email",       placeholder="john@example.com")
        submit = st.form_submit_button("➕ Add User")

        if submit:
            if name and email:
                try:
                    user = client.create_user(name, email)
                    _after_write(f"✅ User '{user['name']}' added successfully!")
                except requests.HTTPError as e:
                    st.error(f"Error: {error_message(e)}")
                except requests.RequestException as e:
                    st.error(f"Error: {e}")
            else:
                st.warning("Please fill in all fields")

with col2:
    st.subheader("Actions")
    if st.button("🔄 Refresh"):
        load_users.clear()
        st.rerun()

st.subheader("All Users")
users = load_users()

if users is None:
    st.error("Error loading users")
elif not users:
    st.info("No users found. Create one above!")
else:
    st.dataframe(pd.DataFrame(users, columns=["id", "name", "email"]), use_container_width=True)

    st.subheader("Edit or Delete")
    labels   = {u["id"]: f"{u['name']} <{u['email']}>" for u in users}
    selected = st.selectbox("User", list(labels), format_func=labels.get)
    current  = next(u for u in users if u["id"] == selected)

    with st.form("edit_form"):
        new_name  = st.text_input("Full Name", value=current["name"])
        new_email = st.text_input("Email",     value=current["email"])
        c1, c2 = st.columns(2)
        save   = c1.form_submit_button("💾 Save")
        remove = c2.form_submit_button("🗑️ Delete")

    if save:
        changes = {}
        if new_name != current["name"]:
            changes["name"] = new_name
        if new_email != current["email"]:
            changes["email"] = new_email
        if not changes:
            st.info("Nothing to update")
        else:
            try:
                client.update_user(selected, **changes)
                _after_write("✅ User updated")
            except requests.HTTPError as e:
                st.error(f"Error: {error_message(e)}")
            except requests.RequestException as e:
                st.error(f"Error: {e}")

    if remove:
        try:
            client.delete_user(selected)
            _after_write("🗑️ User deleted")
        except requests.RequestException as e:
            st.error(f"Error: {e}")
