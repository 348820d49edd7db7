import streamlit as st
import pandas as pd
import streamlit.components.v1 as components

from bom_config import configure_logging, load_settings
from bom_engine import BomEngine
from bom_errors import BomError
from bom_loader import read_bom_file
from bom_network import STYLE_MAP, build_network, render_html
from bom_quantity import format_quantity

# ==========================================
# 1. PAGE CONFIG & PRECISE STYLING
# ==========================================
st.set_page_config(page_title="BOM Engine Cockpit", layout="wide", page_icon="🏭")

st.markdown("""
<style>
    .block-container {padding-top: 1rem !important;}
    div[data-testid="stExpander"] details summary p {font-weight: bold;}

    /* Legend Styling */
    .legend-box {
        background-color: #f9fafb;
        padding: 10px;
        border-radius: 8px;
        border: 1px solid #e5e7eb;
    }
    .legend-item {
        display: flex;
        align-items: center;
        margin-bottom: 6px;
        font-family: 'Segoe UI', sans-serif;
        font-size: 13px;
    }
    .legend-color {
        width: 16px;
        height: 16px;
        margin-right: 10px;
        border-radius: 3px;
        border: 1px solid rgba(0,0,0,0.1);
    }
</style>
""", unsafe_allow_html=True)

SETTINGS = load_settings()
configure_logging(SETTINGS)


# ==========================================
# 2. DATA LOADING
# ==========================================
def load_engine(uploaded_file):
    try:
        data = read_bom_file(uploaded_file, default_uom=SETTINGS.default_uom)
        engine = BomEngine(SETTINGS)
        data.load_into(engine)
        return engine, data.root_id
    except BomError as e:
        st.error(f"Data Error [{e.code}]: {e.message}")
        return None, None


def quantities_frame(engine, mapping):
    rows = []
    for cid, qty in mapping.items():
        component = engine.repository.get_component(cid)
        rows.append({
            "Component": cid,
            "Description": component.name,
            "Quantity": format_quantity(qty),
            "Unit": component.uom,
        })
    return pd.DataFrame(rows)


# ==========================================
# 3. MAIN APP
# ==========================================
st.title("🏭 BOM Engine Cockpit")

with st.sidebar:
    st.header("1. Upload Data")
    uploaded_file = st.file_uploader("Upload BOM", type=["csv", "xlsx", "json"])

    st.markdown("---")
    st.header("Legend")

    # Legend Rendering
    st.markdown('<div class="legend-box">', unsafe_allow_html=True)
    for key, style in STYLE_MAP.items():
        st.markdown(f"""
        <div class="legend-item">
            <div class="legend-color" style="background-color: {style['color']};"></div>
            <div>
                <strong>{style['label']}</strong><br>
                <span style="color:#666; font-size:10px;">{style['desc']}</span>
            </div>
        </div>
        """, unsafe_allow_html=True)
    st.markdown('</div>', unsafe_allow_html=True)

    st.markdown("---")
    st.info("💡 **Tip:** Double-click a node to focus. Hover for details.")

if uploaded_file is not None:
    engine, root_id = load_engine(uploaded_file)

    if engine is not None:
        ids = [c.id for c in engine.repository.components()]
        col1, col2, col3 = st.columns([2, 1, 1])
        with col1:
            selected = st.selectbox("Component", ids, index=ids.index(root_id) if root_id in ids else 0)
        with col2:
            quantity = st.text_input("Quantity", "1")
        with col3:
            search = st.text_input("🔍 Find Component", "")

        tab_topology, tab_explosion, tab_cost, tab_where_used = st.tabs(
            ["Topology", "Explosion", "Cost", "Where Used"]
        )

        try:
            with tab_topology:
                st.subheader(f"BOM Structure: {selected}")
                html = render_html(build_network(engine.repository, root=selected, search=search))
                components.html(html, height=800, scrolling=False)

            with tab_explosion:
                result = engine.explode_result(selected, quantity)
                st.metric("Distinct components", result.unique_component_count)
                st.dataframe(quantities_frame(engine, result.quantities()))
                with st.expander("Raw materials only"):
                    st.dataframe(quantities_frame(engine, engine.raw_materials(selected, quantity)))

            with tab_cost:
                breakdown = engine.cost_breakdown(selected, quantity)
                st.metric("Total cost", format_quantity(breakdown.total_cost))
                st.write(f"Own cost: {format_quantity(breakdown.own_cost)} · "
                         f"Children: {format_quantity(breakdown.children_cost)}")
                st.dataframe(pd.DataFrame([
                    {"Component": d.component_id, "Quantity": format_quantity(d.quantity),
                     "Direct cost": format_quantity(d.direct_cost), "Cost": format_quantity(d.cost)}
                    for d in engine.cost_drivers(selected, quantity)
                ]))

            with tab_where_used:
                st.write("Direct parents:", engine.where_used(selected) or "none")
                ancestors = engine.where_used_all(selected)
                st.dataframe(pd.DataFrame(
                    [{"Assembly": a, "Levels up": lvl} for a, lvl in ancestors.items()]
                ))
        except BomError as e:
            st.error(f"[{e.code}] {e.message}")
