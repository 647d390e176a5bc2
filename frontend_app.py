"""Streamlit frontend for EzRecycle Guide."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Sequence

import requests
import streamlit as st
import streamlit.components.v1 as components

import config
from guidance import ApiGuidanceClient, Guidance
from item_form import CONDITION_OPTIONS, MATERIAL_OPTIONS, SIZE_OPTIONS
from map_view import MapDirective
from workflow import GuidanceWorkflow, WorkflowView

APP_TITLE = "📋 Item Recycling Guide"
APP_SUBTITLE = "Get personalized recycling guidance for any item!"
NO_CHOICE = "Select..."

FIELD_LABELS = {
    "item_name": "Item name",
    "quantity": "Quantity",
    "materials_other": "Other material",
    "plastic_type": "Plastic type / recycling code",
    "size": "Size",
    "condition": "Condition",
    "special_features": "Special features or concerns",
    "user_location": "Your location (city or ZIP)",
}

FIELD_PLACEHOLDERS = {
    "item_name": "e.g. Shampoo bottle, old laptop, pizza box",
    "quantity": "e.g. 1, a bag full, 3 boxes",
    "materials_other": "Describe the other material",
    "plastic_type": "e.g. #1 PET, #5 PP, unknown",
    "special_features": "Batteries inside, food residue, attached labels...",
    "user_location": "e.g. 10001 or Austin, TX",
}

CHOICE_FIELDS = {"size": SIZE_OPTIONS, "condition": CONDITION_OPTIONS}


def inject_css() -> None:
    st.markdown(
        """
        <style>
            .stApp {
                background: linear-gradient(180deg, #f0fdf4 0%, #dcfce7 100%);
                color: #1f2937;
            }
            .block-container {
                max-width: 900px;
                padding-top: 2rem;
                padding-bottom: 3rem;
            }
            .title-wrap h1 {
                color: #15803d;
                text-align: center;
                font-weight: 800;
                margin-bottom: 0.3rem;
            }
            .subtitle {
                text-align: center;
                font-size: 1.1rem;
                margin-bottom: 1.5rem;
            }
            .step-label {
                color: #15803d;
                font-size: 0.85rem;
                font-weight: 700;
                letter-spacing: 0.04em;
                text-transform: uppercase;
            }
            .card {
                background: #ffffff;
                border-radius: 18px;
                padding: 1.2rem 1.4rem;
                box-shadow: 0 6px 20px rgba(0, 0, 0, 0.08);
                margin-bottom: 1rem;
            }
            .method-badge {
                display: inline-block;
                border-radius: 999px;
                padding: 0.35rem 0.9rem;
                background: #dcfce7;
                border: 1px solid #86efac;
                color: #166534;
                font-weight: 700;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def api_call(method: str, endpoint: str, base_url: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}{endpoint}"
    try:
        if method == "GET":
            response = requests.get(url, timeout=10)
        elif method == "POST":
            response = requests.post(url, json=payload or {}, timeout=25)
        else:
            raise ValueError(f"Unsupported method: {method}")
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        raise RuntimeError(f"API request failed: {exc}") from exc


def widget_key(name: str, generation: int) -> str:
    """Widget keys change on every reset so Streamlit drops the old widget values."""
    return f"{name}__{generation}"


def choice_index(options: Sequence[str], value: str) -> int:
    """Index into `(NO_CHOICE, *options)` for the current value."""
    if value in options:
        return list(options).index(value) + 1
    return 0


def get_workflow(base_url: str) -> GuidanceWorkflow:
    workflow = st.session_state.get("workflow")
    if workflow is None:
        workflow = GuidanceWorkflow(ApiGuidanceClient(base_url))
        st.session_state.workflow = workflow
    elif workflow.client.base_url != base_url:
        workflow.client = ApiGuidanceClient(base_url)
    return workflow


def _on_text_change(field: str, key: str) -> None:
    st.session_state.workflow.update_field(field, st.session_state[key])


def _on_choice_change(field: str, key: str) -> None:
    value = st.session_state[key]
    st.session_state.workflow.update_field(field, "" if value == NO_CHOICE else value)


def _on_material_toggle(material: str) -> None:
    st.session_state.workflow.toggle_material(material)


def render_materials(view: WorkflowView, generation: int) -> None:
    st.markdown("**Materials** (select all that apply)")
    columns = st.columns(3)
    for index, material in enumerate(MATERIAL_OPTIONS):
        with columns[index % 3]:
            st.checkbox(
                material,
                value=material in view.item.materials,
                key=widget_key(f"material:{material}", generation),
                on_change=_on_material_toggle,
                args=(material,),
            )


def render_field(field: str, view: WorkflowView, generation: int) -> None:
    key = widget_key(field, generation)
    value = getattr(view.item, field)

    if field in CHOICE_FIELDS:
        options = CHOICE_FIELDS[field]
        st.selectbox(
            FIELD_LABELS[field],
            (NO_CHOICE, *options),
            index=choice_index(options, value),
            key=key,
            on_change=_on_choice_change,
            args=(field, key),
        )
    elif field == "special_features":
        st.text_area(
            FIELD_LABELS[field],
            value=value,
            placeholder=FIELD_PLACEHOLDERS[field],
            key=key,
            on_change=_on_text_change,
            args=(field, key),
        )
    else:
        st.text_input(
            FIELD_LABELS[field],
            value=value,
            placeholder=FIELD_PLACEHOLDERS.get(field, ""),
            key=key,
            on_change=_on_text_change,
            args=(field, key),
        )


def render_form(view: WorkflowView, workflow: GuidanceWorkflow) -> None:
    generation = workflow.state.generation
    st.markdown(
        f"<div class='step-label'>Step {view.current_step} of {view.total_steps}</div>",
        unsafe_allow_html=True,
    )
    st.progress(view.current_step / view.total_steps)
    st.markdown(f"### {view.step.title}")

    for field in view.step.fields:
        if field == "materials":
            render_materials(view, generation)
        elif field == "materials_other" and "Other" not in view.item.materials:
            continue
        else:
            render_field(field, view, generation)

    if view.error:
        st.error(view.error)

    back_col, next_col = st.columns(2)
    with back_col:
        st.button("← Back", on_click=workflow.back, disabled=not view.can_go_back, use_container_width=True)
    with next_col:
        if view.current_step < view.total_steps:
            st.button("Next →", on_click=workflow.advance, disabled=not view.can_advance, use_container_width=True)
        elif st.button(
            "Get Recycling Guidance",
            type="primary",
            disabled=not view.can_submit,
            use_container_width=True,
        ):
            with st.spinner("Analyzing your item..."):
                asyncio.run(workflow.submit())
            st.rerun()


def _render_list(title: str, items: Sequence[str], numbered: bool = False) -> None:
    if not items:
        return
    st.markdown(f"#### {title}")
    if numbered:
        st.markdown("\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1)))
    else:
        st.markdown("\n".join(f"- {item}" for item in items))


def render_guidance(guidance: Guidance) -> None:
    analysis = guidance.item_analysis

    st.markdown('<div class="card">', unsafe_allow_html=True)
    st.markdown("### 🔍 Item Analysis")
    st.write(analysis.summary)
    if analysis.primary_material:
        st.write(f"**Primary material:** {analysis.primary_material}")
    st.write(f"**Recyclable:** {analysis.recyclable.title()}")
    _render_list("Hazards", analysis.hazards)
    st.markdown("</div>", unsafe_allow_html=True)

    st.markdown('<div class="card">', unsafe_allow_html=True)
    st.markdown("### ♻️ Disposal Instructions")
    st.markdown(f"<span class='method-badge'>{guidance.disposal_method}</span>", unsafe_allow_html=True)
    _render_list("Steps", guidance.instructions, numbered=True)
    _render_list("Preparation Tips", guidance.preparation_tips)
    st.markdown("</div>", unsafe_allow_html=True)

    if guidance.alternatives or guidance.environmental_impact:
        st.markdown('<div class="card">', unsafe_allow_html=True)
        _render_list("🌱 Reuse & Alternatives", guidance.alternatives)
        if guidance.environmental_impact:
            st.markdown("#### Environmental Impact")
            st.write(guidance.environmental_impact)
        st.markdown("</div>", unsafe_allow_html=True)

    for warning in guidance.warnings:
        st.warning(warning)


def render_map(directive: Optional[MapDirective]) -> None:
    if directive is None:
        return
    st.markdown("### 🗺️ Nearby Recycling Centers")
    if not config.GOOGLE_MAPS_API_KEY:
        st.caption("Set GOOGLE_MAPS_API_KEY to show the map.")
        return
    components.iframe(directive.embed_url, height=400)


def main() -> None:
    st.set_page_config(page_title="EzRecycle Guide", page_icon="♻️", layout="centered")
    config.configure_logging()
    inject_css()
    st.markdown(
        f"""
        <section class="title-wrap">
            <h1>{APP_TITLE}</h1>
            <div class="subtitle">{APP_SUBTITLE}</div>
        </section>
        """,
        unsafe_allow_html=True,
    )

    with st.sidebar:
        st.markdown("### Backend")
        base_url = st.text_input("FastAPI URL", value=config.API_BASE_DEFAULT)
        st.caption("Run backend with: uvicorn main:app --port 8000")

    try:
        api_call("GET", "/health", base_url)
    except RuntimeError as error:
        st.error(
            "Could not reach FastAPI backend. Start it with `uvicorn main:app --reload` "
            f"and verify URL.\n\n{error}"
        )
        st.stop()

    workflow = get_workflow(base_url)
    view = workflow.view()

    if view.show_start_over:
        st.button("← Start Over", on_click=workflow.reset)

    if view.guidance is None:
        render_form(view, workflow)
    else:
        render_guidance(view.guidance)
        render_map(view.map)


if __name__ == "__main__":
    main()
