"""
SmartReceipt - Main Entry Point
Receipt upload, browsing and spending analytics client using Streamlit.
"""

import streamlit as st
import sys
import logging
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from core.api import ReceiptApiClient
from core.controller import AppController
from ui.components import (
    setup_sidebar,
    display_notifications,
    display_upload_section,
    display_analytics,
    display_receipts_list,
    display_error_fallback,
    run_async
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('smartreceipt.log'),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

def initialize_app():
    """Create the controller and load the first snapshots."""
    if 'controller' in st.session_state:
        return st.session_state.controller

    controller = AppController(ReceiptApiClient())
    run_async(controller.check_health())
    run_async(controller.refresh())

    st.session_state.controller = controller
    st.session_state.upload_nonce = 0
    logger.info("Application initialized successfully")
    return controller

def render(controller: AppController):
    """Render the full page."""
    st.title("🧾 SmartReceipt")
    st.caption("AI-Powered Receipt Manager")

    setup_sidebar(controller)
    display_notifications(controller.notifications)

    left, right = st.columns(2)

    with left:
        display_upload_section(controller)
        st.markdown("---")
        display_analytics(controller)

    with right:
        display_receipts_list(controller)

    st.markdown("---")
    st.markdown("""
    <div style='text-align: center; color: #666;'>
        SmartReceipt | Built with Streamlit + FastAPI
    </div>
    """, unsafe_allow_html=True)

def main():
    """Main application function."""
    st.set_page_config(
        page_title="SmartReceipt",
        page_icon="🧾",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    try:
        controller = initialize_app()
        render(controller)
    except Exception as e:
        logger.exception(f"Unexpected rendering failure: {str(e)}")
        display_error_fallback(e)

if __name__ == "__main__":
    main()
