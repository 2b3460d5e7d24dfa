import os
import sys
import datetime
import logging
from typing import List
from urllib.parse import urlparse

import pandas as pd
import plotly.express as px
import streamlit as st

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Allows `streamlit run price_tracker/dashboard.py` from a checkout
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from price_tracker.config import Settings
from price_tracker.errors import InvalidTrackingRequest
from price_tracker.logging_config import setup_logging
from price_tracker.models.database import Database
from price_tracker.models.schemas import PriceObservation, ProductView
from price_tracker.scrapers.extractor import Extractor
from price_tracker.services.price_analysis import PriceAnalyzer
from price_tracker.services.tracking import TrackingService
from price_tracker.tasks.check_prices import PriceChecker

logger = logging.getLogger('dashboard')

CSS = """
<style>
    .main-header {
        font-size: 2.5rem;
        color: #4CAF50;
        margin-bottom: 1rem;
    }
    .subheader {
        font-size: 1.5rem;
        margin-bottom: 1rem;
    }
    .metric-card {
        background-color: #f5f5f5;
        border-radius: 5px;
        padding: 1.5rem;
        box-shadow: 0 2px 4px rgba(0,0,0,0.1);
    }
    .price-current {
        font-size: 2rem;
        font-weight: bold;
        color: #4CAF50;
    }
    .price-drop {
        color: #4CAF50;
        font-weight: bold;
    }
    .price-increase {
        color: #F44336;
        font-weight: bold;
    }
</style>
"""


def format_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path
    return f"{parsed.netloc}{path[:30] + '...' if len(path) > 30 else path}"


def format_change(change) -> str:
    if change is None:
        return "No change data yet"
    if change < 0:
        return f'<span class="price-drop">▼ {abs(change):.2f}</span>'
    if change > 0:
        return f'<span class="price-increase">▲ {change:.2f}</span>'
    return "No change"


def history_frame(history: List[PriceObservation]) -> pd.DataFrame:
    if not history:
        return pd.DataFrame(columns=["timestamp", "price"])
    df = pd.DataFrame([{"timestamp": h.timestamp, "price": h.price} for h in history])
    df["timestamp"] = pd.to_datetime(df["timestamp"])
    return df


@st.cache_resource
def get_services():
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    db = Database(settings.database_url)
    extractor = Extractor(settings)
    return PriceAnalyzer(db), TrackingService(db, extractor), PriceChecker(db, extractor)


def render_card(product: ProductView, checker: PriceChecker, key: str):
    title = product.title[:40] + '...' if len(product.title) > 40 else product.title
    st.markdown(f"""
    <div class="metric-card">
        <h3>{title}</h3>
        <p>{format_url(product.url)}</p>
        <div class="price-current">{product.current_price:.2f}</div>
        <p>High {product.highest_price:.2f} / Low {product.lowest_price:.2f}</p>
        <p>{format_change(product.price_change)}</p>
    </div>
    """, unsafe_allow_html=True)

    if product.image_url:
        st.image(product.image_url, width=150)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Analyze", key=f"analyze_{key}"):
            st.session_state['selected_product'] = product.id
            st.session_state['active_tab'] = 1
            st.rerun()
    with col2:
        if st.button("Refresh", key=f"refresh_{key}"):
            detail = checker.check_product(product.id)
            st.success(f"Updated price: {detail.product.current_price:.2f}")
            st.rerun()


def render_analysis(products: List[ProductView], analyzer: PriceAnalyzer):
    options = {p.id: p.title for p in products}
    selected = st.session_state.get('selected_product')
    if selected not in options:
        selected = products[0].id

    selected_id = st.selectbox(
        "Select Product",
        options=list(options.keys()),
        format_func=lambda x: options[x],
        index=list(options.keys()).index(selected),
    )
    st.session_state['selected_product'] = selected_id

    detail = analyzer.get_product_detail(selected_id)
    product = detail.product
    df = history_frame(detail.price_history)

    col1, col2 = st.columns([2, 1])
    with col1:
        st.markdown(f"<h2>{product.title}</h2>", unsafe_allow_html=True)
        st.markdown(f"<a href='{product.url}' target='_blank'>{product.url}</a>", unsafe_allow_html=True)

        metrics_col1, metrics_col2, metrics_col3, metrics_col4 = st.columns(4)
        metrics_col1.metric(
            "Current Price",
            f"{product.current_price:.2f}",
            f"{product.price_change:.2f}" if product.price_change is not None else None,
            delta_color="inverse",
        )
        metrics_col2.metric("Highest", f"{product.highest_price:.2f}")
        metrics_col3.metric("Lowest", f"{product.lowest_price:.2f}")
        metrics_col4.metric("Price Points", len(df))
    with col2:
        if product.image_url:
            st.image(product.image_url, width=200)

    st.subheader("Price History")
    fig = px.line(df, x='timestamp', y='price', title="Price History",
                  labels={"timestamp": "Date", "price": "Price"})
    fig.update_layout(height=400, hovermode="x unified", xaxis=dict(title="Date", tickformat="%d %b %Y"))
    st.plotly_chart(fig, use_container_width=True)

    display_df = df.copy()
    display_df['timestamp'] = display_df['timestamp'].dt.strftime('%Y-%m-%d %H:%M')
    display_df = display_df.rename(columns={'timestamp': 'Date/Time', 'price': 'Price'})
    st.dataframe(display_df.sort_values('Date/Time', ascending=False))

    st.download_button(
        "Download Price History",
        df.to_csv(index=False).encode('utf-8'),
        f"price_history_{urlparse(product.url).netloc}_{datetime.datetime.now().strftime('%Y%m%d')}.csv",
        "text/csv",
        key="download-csv",
    )


def main():
    st.set_page_config(page_title="Price Tracker Dashboard", page_icon="📊", layout="wide")
    st.markdown(CSS, unsafe_allow_html=True)
    st.markdown('<h1 class="main-header">Price Tracker Dashboard</h1>', unsafe_allow_html=True)

    analyzer, tracking, checker = get_services()

    st.sidebar.markdown('<h2 class="subheader">Add New Product</h2>', unsafe_allow_html=True)
    with st.sidebar.form("add_product_form"):
        new_url = st.text_input("Product URL")
        if st.form_submit_button("Add Product"):
            try:
                detail, created = tracking.track(new_url)
                if created:
                    st.sidebar.success(f"Successfully added {detail.product.title}")
                else:
                    st.sidebar.info("This product is already being tracked.")
            except InvalidTrackingRequest as e:
                st.sidebar.error(str(e))

    if st.sidebar.button("🔄 Refresh All Prices"):
        results = checker.check_all_products()
        st.sidebar.success(f"Updated {len(results)} products")

    products = analyzer.list_products()
    if not products:
        st.info("No products are being tracked yet. Add a product URL in the sidebar to get started.")
        return

    st.markdown(f"<h2 class='subheader'>Tracking {len(products)} Products</h2>", unsafe_allow_html=True)

    if 'active_tab' not in st.session_state:
        st.session_state['active_tab'] = 0

    col1, col2 = st.columns(2)
    if col1.button("All Products", type="primary" if st.session_state['active_tab'] == 0 else "secondary"):
        st.session_state['active_tab'] = 0
        st.rerun()
    if col2.button("Individual Analysis", type="primary" if st.session_state['active_tab'] == 1 else "secondary"):
        st.session_state['active_tab'] = 1
        st.rerun()

    if st.session_state['active_tab'] == 0:
        for i in range(0, len(products), 3):
            cols = st.columns(3)
            for j, product in enumerate(products[i:i + 3]):
                with cols[j]:
                    render_card(product, checker, key=str(i + j))
    else:
        render_analysis(products, analyzer)


if __name__ == "__main__":
    main()
