import asyncio

import streamlit as st

# Import database module
from db import init_db, is_postgres, get_database_url, DatabaseStore, SQLITE_PATH, APP_DIR

# Import LLM client
from llm import AnthropicClient, get_llm_config

# Import UI components
from ui import (
    inject_css, render_kpi_row, status_badge, status_variant,
    render_priority_card, section_header
)

# Import services (NO Streamlit UI dependencies)
from services.catalog import EXAM_NAME, EXAM_SUBJECTS, EXAM_TOTAL_QUESTIONS, EXAM_SCORING_SCHEME
from services.core import (
    load_state, save_state, initialize_subjects, add_exercise,
    add_study_hours, update_knowledge_level, validate_exercise_input
)
from services.metrics import rank_subjects, get_knowledge_level, reported_knowledge_level
from services.dashboard import (
    compute_stats, performance_status, subject_progress_pct,
    priority_frame, exercise_history_frame
)
from services.analysis import AnalysisRequester, TOP_SUBJECTS_LIMIT, NOT_REPORTED

# ============ STREAMLIT APP ============

# Developer mode flag - set to True to show internal diagnostics in sidebar
DEV_MODE = False

HOUR_INCREMENTS = (1, 2, 4)

st.set_page_config(page_title="Sistema de Estudos Inteligente", page_icon="📚", layout="wide")
init_db()

# Inject global CSS styling
inject_css()

store = DatabaseStore()

# ============ SESSION STATE INITIALIZATION ============
if "app_state" not in st.session_state:
    st.session_state.app_state = load_state(store)
if "last_save" not in st.session_state:
    st.session_state.last_save = None
if "exercise_form_nonce" not in st.session_state:
    st.session_state.exercise_form_nonce = 0
if "analysis_requester" not in st.session_state:
    llm_config = get_llm_config()
    st.session_state.analysis_requester = AnalysisRequester(
        AnthropicClient(llm_config), timeout=llm_config["timeout"]
    )


def commit(new_state) -> bool:
    """
    Keep an updated state and persist it.
    Returns False when the update was rejected (same state instance).
    """
    if new_state is st.session_state.app_state:
        return False
    st.session_state.app_state = new_state
    st.session_state.last_save = save_state(new_state, store)
    return True


# ============ DATABASE DIAGNOSTICS (DEV ONLY) ============
if DEV_MODE:
    db_mode = "🐘 Postgres (Supabase)" if is_postgres() else "📁 SQLite (Local)"
    with st.sidebar:
        with st.expander("🔍 Database Diagnostics", expanded=False):
            st.caption(f"**Database:** {db_mode}")
            st.code(get_database_url(), language=None)
            if not is_postgres():
                st.caption(f"**Default SQLite Path:** {SQLITE_PATH}")
            st.caption(f"**App Directory:** {str(APP_DIR)}")
            st.caption(f"**State Version:** {st.session_state.app_state.version}")
            last_save = st.session_state.last_save
            if last_save is None:
                st.caption("**Last Save:** nothing saved this session")
            elif last_save["ok"]:
                st.caption(f"**Last Save:** ✅ v{last_save['version']}")
            else:
                st.caption(f"**Last Save:** ❌ {last_save['failed']}")

state = st.session_state.app_state

# ============ WELCOME SCREEN ============
if not state.initialized:
    st.title("📚 Sistema de Estudos Inteligente")
    st.caption(EXAM_NAME)
    st.markdown(f"""
Bem-vindo! Este sistema prioriza automaticamente suas matérias com base em:

- **Performance** nos exercícios
- **Nível de conhecimento** que você declarar
- **Peso no edital** ({EXAM_TOTAL_QUESTIONS} questões, {EXAM_SCORING_SCHEME})
- **Dificuldade** e **horas de estudo** acumuladas

Serão criadas {len(EXAM_SUBJECTS)} matérias a partir do edital.
""")
    if st.button("🚀 Iniciar Preparação", type="primary"):
        commit(initialize_subjects(state))
        st.rerun()
    st.stop()

# ============ DASHBOARD ============
subjects = state.subjects
exercises = state.exercises
levels = state.knowledge_levels

ranked = rank_subjects(subjects, exercises, levels)
stats = compute_stats(subjects, exercises)
status = performance_status(stats["average_percentage"])

st.title("📚 Sistema de Estudos Inteligente")
st.caption(EXAM_NAME)

render_kpi_row([
    {
        "label": "Horas Estudadas",
        "value": f"{stats['hours_studied']:g}h",
        "subtext": f"Meta: {stats['goal_hours']}h ({stats['progress_pct']:.1f}%)",
        "variant": "info",
    },
    {
        "label": "Exercícios",
        "value": str(stats["exercise_count"]),
        "subtext": "registros de prática",
    },
    {
        "label": "Média Geral",
        "value": f"{stats['average_percentage']:.1f}%",
        "subtext": f"{stats['total_questions']} questões na prova",
        "variant": status_variant(status),
    },
])
st.markdown(f"Status: {status_badge(status)}", unsafe_allow_html=True)

priorities_tab, subjects_tab, exercises_tab, analysis_tab = st.tabs(
    ["🎯 Prioridades", "📖 Matérias", "✍️ Exercícios", "🤖 Análise IA"]
)

# ============ PRIORITIES TAB ============
with priorities_tab:
    section_header(f"Top {TOP_SUBJECTS_LIMIT} matérias para focar", margin_top=False)
    for rank, (subject, result) in enumerate(ranked[:TOP_SUBJECTS_LIMIT], start=1):
        level = reported_knowledge_level(levels, subject["name"])
        render_priority_card(rank, subject, result, NOT_REPORTED if level is None else str(level))
        st.progress(subject_progress_pct(subject) / 100)

    with st.expander("📊 Tabela completa"):
        st.dataframe(priority_frame(ranked, levels), hide_index=True, use_container_width=True)

# ============ SUBJECTS TAB ============
with subjects_tab:
    section_header("Nível de conhecimento e horas de estudo", margin_top=False)
    for subject, result in ranked:
        subject_id = subject["id"]
        with st.container(border=True):
            info_col, level_col, hours_col = st.columns([3, 1, 2])
            with info_col:
                st.markdown(f"**{subject['name']}**")
                st.caption(
                    f"{subject['question_count']} questões • "
                    f"Prioridade: {result['priority']:.2f} • "
                    f"{subject['hours_studied']:g}h / {subject['goal_hours']}h"
                )
                st.progress(subject_progress_pct(subject) / 100)
            with level_col:
                current_level = get_knowledge_level(levels, subject["name"])
                chosen = st.selectbox(
                    "Seu nível",
                    options=list(range(11)),
                    index=current_level,
                    format_func=lambda n: f"{n}/10",
                    key=f"level_{subject_id}",
                )
                if chosen != current_level:
                    commit(update_knowledge_level(state, subject["name"], chosen))
                    st.rerun()
            with hours_col:
                st.caption("Registrar estudo")
                button_cols = st.columns(len(HOUR_INCREMENTS))
                for col, hours in zip(button_cols, HOUR_INCREMENTS):
                    if col.button(f"+{hours}h", key=f"hours_{subject_id}_{hours}"):
                        commit(add_study_hours(state, subject_id, hours))
                        st.rerun()

# ============ EXERCISES TAB ============
with exercises_tab:
    section_header("Registrar exercício", margin_top=False)
    nonce = st.session_state.exercise_form_nonce
    subject_names = [s["name"] for s in subjects]

    with st.form(f"exercise_form_{nonce}"):
        chosen_subject = st.selectbox(
            "Matéria",
            options=[""] + subject_names,
            format_func=lambda name: name or "Selecione a matéria",
        )
        correct_col, total_col = st.columns(2)
        with correct_col:
            correct = st.number_input("Acertos", min_value=0, value=0, step=1)
        with total_col:
            total = st.number_input("Total de questões", min_value=0, value=0, step=1)
        topics = st.text_input(
            "Assuntos que errou (separados por vírgula)",
            placeholder="Ex: crase, concordância verbal"
        )
        submitted = st.form_submit_button("➕ Registrar", type="primary")

    if submitted and validate_exercise_input(chosen_subject, correct, total) is None:
        if commit(add_exercise(state, chosen_subject, correct, total, topics)):
            # A new form key renders empty widgets
            st.session_state.exercise_form_nonce += 1
            st.rerun()

    section_header("Histórico")
    if exercises:
        st.dataframe(exercise_history_frame(exercises), hide_index=True, use_container_width=True)
    else:
        st.info("Nenhum exercício registrado ainda.")

# ============ ANALYSIS TAB ============
with analysis_tab:
    section_header("Análise estratégica com Claude", margin_top=False)
    st.caption(
        f"Envia as {TOP_SUBJECTS_LIMIT} matérias prioritárias e os exercícios recentes "
        "para uma análise personalizada."
    )
    requester = st.session_state.analysis_requester

    if st.button("🤖 Gerar Análise Estratégica", type="primary", disabled=requester.busy):
        with st.spinner("Analisando seus dados..."):
            asyncio.run(requester.request(ranked, exercises, levels))

    result = requester.last_result
    if result is not None:
        if result["failure"] is None:
            with st.container(border=True):
                st.markdown(result["text"])
        else:
            st.error(result["text"])
