"""
UI Components and Styling for the Concurso Study Tracker
KPI cards, status badges and priority cards for the Streamlit dashboard
"""
import streamlit as st

from security import sanitize_html
from services.catalog import CATEGORY_SPECIFIC

# ============ GLOBAL CSS ============
GLOBAL_CSS = """
<style>
/* Typography */
h1 {
    font-size: 1.8rem !important;
    font-weight: 600 !important;
    margin-bottom: 0.5rem !important;
}
h3 {
    font-size: 1.15rem !important;
    font-weight: 600 !important;
    margin-bottom: 0.5rem !important;
}

/* KPI Card styling */
.kpi-card {
    background: rgba(255, 255, 255, 0.04);
    border: 1px solid rgba(255, 255, 255, 0.1);
    border-radius: 10px;
    padding: 1rem 1.25rem;
    text-align: center;
}
.kpi-label {
    font-size: 0.75rem;
    font-weight: 500;
    color: rgba(255, 255, 255, 0.55);
    text-transform: uppercase;
    letter-spacing: 0.4px;
    margin-bottom: 0.35rem;
}
.kpi-value {
    font-size: 1.75rem;
    font-weight: 600;
    line-height: 1.2;
}
.kpi-subtext {
    font-size: 0.75rem;
    color: rgba(255, 255, 255, 0.45);
    margin-top: 0.25rem;
}
.kpi-card-success { border-color: rgba(34, 197, 94, 0.25); }
.kpi-card-success .kpi-value { color: #22c55e; }
.kpi-card-warning { border-color: rgba(234, 179, 8, 0.25); }
.kpi-card-warning .kpi-value { color: #eab308; }
.kpi-card-danger { border-color: rgba(239, 68, 68, 0.25); }
.kpi-card-danger .kpi-value { color: #ef4444; }
.kpi-card-info { border-color: rgba(59, 130, 246, 0.25); }
.kpi-card-info .kpi-value { color: #3b82f6; }

/* Status badge styling */
.status-badge {
    display: inline-block;
    padding: 0.35rem 0.75rem;
    border-radius: 6px;
    font-size: 0.8rem;
    font-weight: 600;
    letter-spacing: 0.3px;
}
.status-excellent {
    background: rgba(34, 197, 94, 0.15);
    color: #22c55e;
    border: 1px solid rgba(34, 197, 94, 0.3);
}
.status-on-track {
    background: rgba(234, 179, 8, 0.15);
    color: #eab308;
    border: 1px solid rgba(234, 179, 8, 0.3);
}
.status-needs-focus {
    background: rgba(239, 68, 68, 0.15);
    color: #ef4444;
    border: 1px solid rgba(239, 68, 68, 0.3);
}

/* Priority cards */
.priority-card {
    border-left: 4px solid #6366f1;
    padding: 0.75rem 1rem;
    margin-bottom: 0.75rem;
    background: rgba(255, 255, 255, 0.03);
    border-radius: 0 8px 8px 0;
}
.priority-title {
    font-weight: 600;
    font-size: 1.05rem;
}
.priority-score {
    float: right;
    font-size: 1.4rem;
    font-weight: 700;
    color: #6366f1;
}
.priority-tag {
    display: inline-block;
    margin-left: 0.4rem;
    padding: 0.1rem 0.45rem;
    border-radius: 4px;
    font-size: 0.7rem;
    background: rgba(99, 102, 241, 0.15);
    color: #a5b4fc;
}
.priority-detail {
    font-size: 0.85rem;
    color: rgba(255, 255, 255, 0.6);
    margin-top: 0.35rem;
}
</style>
"""


def inject_css():
    """Inject global CSS styles into the Streamlit app."""
    st.markdown(GLOBAL_CSS, unsafe_allow_html=True)


def metric_card(label: str, value: str, subtext: str = None, variant: str = None) -> str:
    """
    Generate HTML for a KPI metric card.

    Args:
        label: Small label text above the value
        value: Large main value
        subtext: Optional small text below the value
        variant: Color variant - 'success', 'warning', 'danger', 'info', or None

    Returns:
        HTML string for the metric card
    """
    subtext_html = f'<div class="kpi-subtext">{subtext}</div>' if subtext else ''
    variant_class = f' kpi-card-{variant}' if variant else ''
    return f'''
    <div class="kpi-card{variant_class}">
        <div class="kpi-label">{label}</div>
        <div class="kpi-value">{value}</div>
        {subtext_html}
    </div>
    '''


def render_kpi_row(metrics: list):
    """
    Render a row of KPI metric cards.

    Args:
        metrics: List of dicts with keys: label, value, subtext (optional), variant (optional)
    """
    cols = st.columns(len(metrics))
    for col, m in zip(cols, metrics):
        with col:
            st.markdown(
                metric_card(m['label'], m['value'], m.get('subtext'), m.get('variant')),
                unsafe_allow_html=True
            )


STATUS_MAP = {
    'excellent': ('EXCELENTE!', 'status-excellent', 'success'),
    'on_track': ('NO CAMINHO', 'status-on-track', 'warning'),
    'needs_focus': ('PRECISA FOCAR', 'status-needs-focus', 'danger'),
}


def status_badge(status: str) -> str:
    """
    Generate HTML for a performance status badge.

    Args:
        status: One of 'excellent', 'on_track', 'needs_focus'
    """
    text, css_class, _ = STATUS_MAP.get(status, ('DESCONHECIDO', '', None))
    return f'<span class="status-badge {css_class}">{text}</span>'


def status_variant(status: str):
    """KPI card variant matching a performance status."""
    return STATUS_MAP.get(status, (None, None, None))[2]


def render_priority_card(rank: int, subject: dict, result: dict, level_label: str):
    """
    Render one ranked subject.

    Args:
        rank: 1-based position in the ranking
        subject: Subject dict
        result: Output of compute_priority()
        level_label: Knowledge level text ("7" or "não informado")
    """
    category = "Específica" if subject["category"] == CATEGORY_SPECIFIC else "Geral"
    stars = "⭐" * subject["difficulty"]
    st.markdown(f'''
    <div class="priority-card">
        <span class="priority-score">{result["priority"]:.2f}</span>
        <span class="priority-title">#{rank} {sanitize_html(subject["name"])}</span>
        <span class="priority-tag">{subject["question_count"]} questões</span>
        <span class="priority-tag">{category}</span>
        <div class="priority-detail">
            Performance: {result["avg_performance"]:.1f}% &nbsp;|&nbsp;
            Conhecimento: {sanitize_html(level_label)}/10 &nbsp;|&nbsp;
            Estudado: {subject["hours_studied"]}h / {subject["goal_hours"]}h &nbsp;|&nbsp;
            Dificuldade: {stars}
        </div>
    </div>
    ''', unsafe_allow_html=True)


def section_header(title: str, margin_top: bool = True):
    """Render a section header with consistent styling."""
    margin = "margin-top: 2rem;" if margin_top else ""
    st.markdown(f'<h3 style="{margin}">{title}</h3>', unsafe_allow_html=True)
