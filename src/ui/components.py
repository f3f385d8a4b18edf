"""
UI components for the receipt client.
Streamlit rendering for upload, analytics, the receipt list and notifications.
All state lives in the AppController kept in the session.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Coroutine, Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from core.categories import CATEGORIES, color_for, display_name_for
from core.controller import AppController
from core.exceptions import FileValidationError
from core.models import AnalyticsSummary, Receipt
from core.notifications import ErrorNotification, InfoNotification, NotificationQueue, SuccessNotification
from core.upload import UPLOAD_EXTENSIONS, validate_upload

logger = logging.getLogger(__name__)

NOTIFICATION_RENDERERS = {
    SuccessNotification: (st.success, "✅"),
    ErrorNotification: (st.error, "❌"),
    InfoNotification: (st.info, "ℹ️"),
}


def run_async(coro: Coroutine) -> Any:
    """Drive a controller coroutine from a Streamlit script or callback."""
    return asyncio.run(coro)


def format_currency(amount: Decimal) -> str:
    """Format currency amount for display."""
    return f"${amount:,.2f}"


def setup_sidebar(controller: AppController):
    """Setup the sidebar with backend status and global actions."""
    with st.sidebar:
        st.header("🧾 SmartReceipt")
        st.markdown(f"**Backend:** `{controller.api.base_url}`")

        if controller.backend_status is not None:
            status = controller.backend_status.get("status", "ok")
            st.success(f"✅ Backend online ({status})")
        elif controller.backend_error:
            st.error(f"❌ {controller.backend_error}")
        else:
            st.info("Backend status unknown")

        col1, col2 = st.columns(2)
        with col1:
            st.button(
                "🔄 Refresh",
                use_container_width=True,
                on_click=lambda: run_async(controller.refresh(announce=True)),
                help="Re-fetch receipts and analytics"
            )
        with col2:
            st.button(
                "🩺 Check",
                use_container_width=True,
                on_click=_on_check_backend,
                args=(controller,),
                help="Ping the backend and load its categories"
            )

        if controller.backend_categories:
            st.caption("Backend categories: " + ", ".join(controller.backend_categories))

        with st.expander("❓ Help & Tips"):
            st.markdown("""
            **Supported Formats:** JPG and PNG images up to 10MB

            **Best Results:**
            - Clear, well-lit photos
            - Whole receipt in frame
            - Flat, straight orientation

            **Searching:** matches merchant names and item names,
            within the selected category.
            """)


def _on_check_backend(controller: AppController):
    run_async(controller.check_health())
    run_async(controller.load_backend_categories())


def display_notifications(queue: NotificationQueue):
    """Render active notifications with a dismiss button each."""
    for notification in queue.active():
        render, icon = NOTIFICATION_RENDERERS[type(notification)]
        col1, col2 = st.columns([12, 1])
        with col1:
            render(notification.message, icon=icon)
        with col2:
            st.button("✕", key=f"dismiss_{notification.id}", on_click=queue.remove, args=(notification.id,))


def display_upload_section(controller: AppController):
    """Display the receipt upload section with preview."""
    st.subheader("📸 Upload Receipt")

    uploader_key = f"receipt_upload_{st.session_state.get('upload_nonce', 0)}"
    uploaded_file = st.file_uploader(
        "Choose a receipt image",
        type=UPLOAD_EXTENSIONS,
        key=uploader_key,
        help="JPG or PNG, max 10MB. The receipt is parsed by the AI backend."
    )

    if uploaded_file is None:
        st.caption("Drop a photo of a receipt to extract merchant, items and totals.")
        return

    try:
        validate_upload(uploaded_file.name, uploaded_file.size, uploaded_file.type)
    except FileValidationError as e:
        st.error(f"❌ {e.message}")
        return

    st.image(uploaded_file.getvalue(), caption=uploaded_file.name)
    st.button(
        "🚀 Upload & Process",
        type="primary",
        use_container_width=True,
        on_click=_on_upload,
        args=(controller, uploader_key)
    )


def _on_upload(controller: AppController, uploader_key: str):
    uploaded_file = st.session_state.get(uploader_key)
    if uploaded_file is None:
        return

    receipt = run_async(controller.upload(uploaded_file.getvalue(), uploaded_file.name, uploaded_file.type))
    if receipt is not None:
        # New key resets the uploader widget
        st.session_state.upload_nonce = st.session_state.get("upload_nonce", 0) + 1


def display_analytics(controller: AppController):
    """Display the analytics dashboard or its empty state."""
    summary = controller.summary

    if summary is None and controller.loading_analytics:
        st.info("Loading analytics...")
        return

    if summary is None or summary.is_empty:
        st.markdown("""
        <div style='text-align: center; padding: 40px 20px;'>
            <p style='font-size: 48px;'>📊</p>
            <h3>No analytics yet</h3>
            <p style='color: #6c757d;'>Upload receipts to see your spending analytics</p>
        </div>
        """, unsafe_allow_html=True)
        return

    engine = controller.analytics_engine
    st.subheader("📊 Analytics Dashboard")
    if controller.summary_is_local:
        st.caption("Analytics service unavailable, figures computed from the loaded receipts.")

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Total Receipts", summary.total_receipts)
        st.metric("Categories", len(summary.by_category))
    with col2:
        st.metric("Total Spent", format_currency(summary.total_spent))
        st.metric("Avg per Receipt", format_currency(engine.average_per_receipt(summary)))

    breakdown_tab, monthly_tab, charts_tab = st.tabs(["By Category", "By Month", "Charts"])

    with breakdown_tab:
        for row in engine.category_breakdown(summary):
            label_col, amount_col = st.columns([3, 1])
            with label_col:
                st.markdown(f"**{row['label']}**")
            with amount_col:
                st.markdown(f"**{format_currency(row['amount'])}**")
            st.progress(min(float(row["percentage"]) / 100, 1.0))
            st.caption(f"{row['percentage']:.1f}% of total")

    with monthly_tab:
        for month, amount in reversed(engine.sorted_months(summary)):
            label_col, amount_col = st.columns([3, 1])
            with label_col:
                st.markdown(f"**{engine.format_month_label(month)}**")
            with amount_col:
                st.markdown(f"**{format_currency(amount)}**")

    with charts_tab:
        display_analytics_charts(controller, summary)


def display_analytics_charts(controller: AppController, summary: AnalyticsSummary):
    """Plot the per-category and per-month breakdowns."""
    engine = controller.analytics_engine

    categories_df = pd.DataFrame([
        {"Category": row["label"], "Amount": float(row["amount"]), "Key": row["category"]}
        for row in engine.category_breakdown(summary)
    ])
    if not categories_df.empty:
        fig_pie = px.pie(
            categories_df,
            values="Amount",
            names="Category",
            color="Key",
            color_discrete_map={key: color_for(key) for key in categories_df["Key"]},
            title="Spending by Category"
        )
        fig_pie.update_traces(textposition='inside', textinfo='percent+label')
        st.plotly_chart(fig_pie, use_container_width=True)

    monthly_df = pd.DataFrame([
        {"Month": engine.format_month_label(month), "Total": float(amount)}
        for month, amount in engine.sorted_months(summary)
    ])
    if not monthly_df.empty:
        fig_bar = px.bar(monthly_df, x="Month", y="Total", title="Spending by Month")
        fig_bar.update_layout(xaxis_title="Month", yaxis_title="Total Spending ($)")
        st.plotly_chart(fig_bar, use_container_width=True)


def display_receipts_list(controller: AppController):
    """Display category filters, search, export and the receipt cards."""
    search_query = st.text_input(
        "Search",
        key="search_query",
        placeholder="🔍 Search receipts or items...",
        label_visibility="collapsed"
    )
    controller.set_search_query(search_query)
    view = controller.view

    header_col, export_col = st.columns([3, 1])
    with header_col:
        st.subheader(f"📝 Your Receipts ({view.count})")
    with export_col:
        st.button(
            "⬇️ Export CSV",
            use_container_width=True,
            disabled=not controller.receipts,
            on_click=_on_export,
            args=(controller,)
        )

    pending = st.session_state.get("pending_export")
    if pending:
        st.download_button(
            f"💾 Save {pending['filename']}",
            data=pending["data"],
            file_name=pending["filename"],
            mime="text/csv",
            on_click=lambda: st.session_state.pop("pending_export", None)
        )

    display_category_filters(controller)

    if controller.loading_receipts and not controller.receipts:
        st.info("Loading receipts...")
        return

    if view.is_empty:
        icon = "🔍" if view.search_query else "📭"
        st.markdown(f"""
        <div style='text-align: center; padding: 40px 20px;'>
            <p style='font-size: 48px;'>{icon}</p>
            <h3>{view.empty_title}</h3>
            <p style='color: #6c757d;'>{view.empty_hint}</p>
        </div>
        """, unsafe_allow_html=True)
        if view.has_active_filters:
            st.button("Clear filters", on_click=_on_clear_filters, args=(controller,))
        return

    for receipt in view.receipts:
        display_receipt_card(controller, receipt)


def display_category_filters(controller: AppController):
    """Display one toggle button per registry entry."""
    columns = st.columns(len(CATEGORIES))
    for column, descriptor in zip(columns, CATEGORIES):
        selected = controller.selected_category == descriptor.value
        with column:
            st.button(
                descriptor.icon,
                key=f"category_{descriptor.value.value if descriptor.value else 'all'}",
                help=descriptor.display_name,
                type="primary" if selected else "secondary",
                disabled=selected,
                on_click=lambda value=descriptor.value: run_async(controller.select_category(value))
            )


def _on_export(controller: AppController):
    def stash_download(data: bytes, filename: str):
        st.session_state.pending_export = {"data": data, "filename": filename}

    controller.export_csv(stash_download)


def _on_clear_filters(controller: AppController):
    st.session_state.search_query = ""
    run_async(controller.clear_filters())


def display_receipt_card(controller: AppController, receipt: Receipt):
    """Display a single receipt with its items and a guarded delete action."""
    title = f"{receipt.merchant_name} · {format_currency(receipt.total)} · {receipt.date}"
    with st.expander(title):
        color = color_for(receipt.category)
        st.markdown(
            f"<span style='background: {color}; color: white; padding: 2px 10px; "
            f"border-radius: 12px; font-size: 12px;'>{display_name_for(receipt.category)}</span>",
            unsafe_allow_html=True
        )

        col1, col2, col3 = st.columns(3)
        with col1:
            st.write(f"**Date:** {receipt.date}")
            if receipt.time:
                st.write(f"**Time:** {receipt.time}")
        with col2:
            st.write(f"**Subtotal:** {format_currency(receipt.subtotal)}")
            st.write(f"**Tax:** {format_currency(receipt.tax)}")
        with col3:
            st.write(f"**Total:** {format_currency(receipt.total)}")
            if receipt.payment_method:
                st.write(f"**Payment:** {receipt.payment_method}")

        if receipt.items:
            items_df = pd.DataFrame([
                {"Item": item.name, "Qty": item.quantity, "Price": format_currency(item.price)}
                for item in receipt.items
            ])
            st.dataframe(items_df, hide_index=True, use_container_width=True)
        else:
            st.caption("No line items extracted")

        if not receipt.matches_total:
            st.caption("⚠️ Subtotal and tax do not add up to the total")

        caption = f"📁 {receipt.filename}"
        if receipt.ai_model:
            caption += f" · parsed by {receipt.ai_model}"
        st.caption(caption)

        display_delete_action(controller, receipt)


def display_delete_action(controller: AppController, receipt: Receipt):
    """Two-step delete: ask for confirmation before calling the backend."""
    confirm_key = f"confirm_delete_{receipt.id}"

    if not st.session_state.get(confirm_key):
        st.button("🗑️ Delete", key=f"delete_{receipt.id}",
                  on_click=lambda: st.session_state.update({confirm_key: True}))
        return

    st.warning(f"Are you sure you want to delete receipt from {receipt.merchant_name}?")
    col1, col2 = st.columns(2)
    with col1:
        st.button("Yes, delete", key=f"delete_yes_{receipt.id}", type="primary",
                  on_click=_on_delete, args=(controller, receipt, confirm_key))
    with col2:
        st.button("Cancel", key=f"delete_no_{receipt.id}",
                  on_click=lambda: st.session_state.pop(confirm_key, None))


def _on_delete(controller: AppController, receipt: Receipt, confirm_key: str):
    st.session_state.pop(confirm_key, None)
    run_async(controller.delete_receipt(receipt.id, receipt.merchant_name))


def display_error_fallback(error: Optional[BaseException] = None):
    """Last-resort screen for unexpected rendering failures."""
    st.error("⚠️ Something went wrong")
    st.write(str(error) if error else "An unexpected error occurred")
    if st.button("🔄 Reload Page", type="primary"):
        for key in list(st.session_state.keys()):
            del st.session_state[key]
        st.rerun()
