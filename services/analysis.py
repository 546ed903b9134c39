"""
AI coaching analysis.
Pure Python business logic - NO Streamlit dependencies.

Packages the top-ranked subjects and the most recent exercises into a
prompt, sends it to an LLM client and returns the text of the reply.

The LLM client only needs an awaitable complete(prompt) returning a
Messages-API style dict: {"content": [{"type": "text", "text": "..."}]}.
Transport and parsing errors never leave this module; they come back as
a failed result with a fixed user-facing message.
"""

import asyncio
import json
import sys
import threading
from typing import Optional, List, Dict, Any, Sequence, Tuple

from services.catalog import (
    EXAM_NAME, EXAM_TOTAL_QUESTIONS, EXAM_GENERAL_QUESTIONS, EXAM_SPECIFIC_QUESTIONS,
    EXAM_SCORING_SCHEME, EXAM_ESSAY_POINTS, EXAM_PASSING_THRESHOLD, CATEGORY_SPECIFIC,
)
from services.metrics import reported_knowledge_level, exercise_count_for

TOP_SUBJECTS_LIMIT = 10
RECENT_EXERCISES_LIMIT = 15
DEFAULT_TIMEOUT_SECONDS = 60.0

NOT_REPORTED = "não informado"

# ============ REQUESTER STATES ============
IDLE = "idle"
REQUESTING = "requesting"
SUCCEEDED = "succeeded"
FAILED = "failed"

# ============ FAILURE KINDS ============
FAILURE_TIMEOUT = "timeout"
FAILURE_CONNECTION = "connection"
FAILURE_MALFORMED = "malformed"
FAILURE_BUSY = "busy"

FAILURE_MESSAGES = {
    FAILURE_TIMEOUT: "A análise demorou demais para responder. Verifique sua conexão e tente novamente.",
    FAILURE_CONNECTION: "Erro ao conectar com Claude. Verifique sua conexão.",
    FAILURE_MALFORMED: "Não foi possível gerar análise.",
    FAILURE_BUSY: "Uma análise já está em andamento. Aguarde o resultado.",
}

PROMPT_TEMPLATE = """Você é um especialista em concursos públicos e coaching de estudos. Analise o desempenho do candidato no concurso {exam_name}.

DADOS DO CONCURSO:
- Total: {total_questions} questões ({general_questions} gerais + {specific_questions} específicas)
- Sistema: {scoring_scheme}
- Prova discursiva: {essay_points} pontos
- Nota mínima para passar: {passing_threshold}

MATÉRIAS PRIORITÁRIAS (com score de prioridade calculado):
{subjects_json}

EXERCÍCIOS RECENTES:
{exercises_json}

CONTEXTO:
O candidato está usando um sistema de priorização que considera: performance em exercícios, nível de conhecimento declarado, peso da matéria no edital, dificuldade e progresso nos estudos.

ANÁLISE SOLICITADA:
1. **Diagnóstico Geral**: Avalie o nível atual de preparação e probabilidade de aprovação
2. **Top 5 Prioridades**: Liste as 5 matérias que ele DEVE focar nos próximos 15 dias
3. **Pontos Fracos Críticos**: Identifique assuntos específicos onde ele está errando muito
4. **Plano de Ação Semanal**: Sugira distribuição de horas de estudo
5. **Dicas Estratégicas**: Conselhos específicos para melhorar rapidamente

Seja DIRETO, PRÁTICO e MOTIVADOR. Use números e seja específico."""


# ============ PROMPT SHAPING ============

def build_subject_records(
    ranked: Sequence[Tuple[Dict[str, Any], Dict[str, Any]]],
    exercises: Sequence[Dict[str, Any]],
    knowledge_levels: Dict[str, int],
    limit: int = TOP_SUBJECTS_LIMIT
) -> List[Dict[str, Any]]:
    """Compact records for the top `limit` ranked subjects."""
    records = []
    for subject, result in list(ranked)[:limit]:
        level = reported_knowledge_level(knowledge_levels, subject["name"])
        records.append({
            "nome": subject["name"],
            "questoes": subject["question_count"],
            "tipo": "especifico" if subject["category"] == CATEGORY_SPECIFIC else "geral",
            "horas_estudadas": subject["hours_studied"],
            "meta_horas": subject["goal_hours"],
            "nivel_conhecimento": NOT_REPORTED if level is None else level,
            "prioridade": f"{result['score']:.2f}",
            "performance_media": f"{result['avg_performance']:.1f}%",
            "exercicios_feitos": exercise_count_for(exercises, subject["name"]),
        })
    return records


def build_recent_exercise_records(
    exercises: Sequence[Dict[str, Any]],
    limit: int = RECENT_EXERCISES_LIMIT
) -> List[Dict[str, Any]]:
    """
    Compact records for the last `limit` exercises.
    The collection is append-only, so insertion order is chronological.
    """
    recent = list(exercises)[-limit:] if limit > 0 else []
    return [
        {
            "materia": e["subject"],
            "acertos": e["correct"],
            "total": e["total"],
            "percentual": f"{float(e['percentage']):.1f}%",
            "assuntos_errados": list(e["topics"]),
        }
        for e in recent
    ]


def build_analysis_prompt(
    subject_records: List[Dict[str, Any]],
    exercise_records: List[Dict[str, Any]]
) -> str:
    return PROMPT_TEMPLATE.format(
        exam_name=EXAM_NAME,
        total_questions=EXAM_TOTAL_QUESTIONS,
        general_questions=EXAM_GENERAL_QUESTIONS,
        specific_questions=EXAM_SPECIFIC_QUESTIONS,
        scoring_scheme=EXAM_SCORING_SCHEME,
        essay_points=EXAM_ESSAY_POINTS,
        passing_threshold=EXAM_PASSING_THRESHOLD,
        subjects_json=json.dumps(subject_records, indent=2, ensure_ascii=False),
        exercises_json=json.dumps(exercise_records, indent=2, ensure_ascii=False),
    )


def extract_text(response: Any) -> Optional[str]:
    """Return the text of the first text-typed content block, or None."""
    if not isinstance(response, dict):
        return None
    content = response.get("content")
    if not isinstance(content, list):
        return None
    for block in content:
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            return text if isinstance(text, str) and text.strip() else None
    return None


# ============ REQUEST ============

def _failure(kind: str) -> Dict[str, Any]:
    status = "busy" if kind == FAILURE_BUSY else FAILED
    return {"status": status, "text": FAILURE_MESSAGES[kind], "failure": kind}


async def request_analysis(
    ranked: Sequence[Tuple[Dict[str, Any], Dict[str, Any]]],
    exercises: Sequence[Dict[str, Any]],
    knowledge_levels: Dict[str, int],
    llm_client,
    timeout: float = DEFAULT_TIMEOUT_SECONDS
) -> Dict[str, Any]:
    """
    Ask the LLM for a coaching analysis.

    Args:
        ranked: Output of rank_subjects()
        exercises: Full exercise collection
        knowledge_levels: Mapping of subject name -> level
        llm_client: Object with an awaitable complete(prompt)
        timeout: Seconds to wait for the reply

    Returns:
        Dict with status ('succeeded' | 'failed'), text (analysis or
        fallback message) and failure (None, 'timeout', 'connection' or
        'malformed')
    """
    prompt = build_analysis_prompt(
        build_subject_records(ranked, exercises, knowledge_levels),
        build_recent_exercise_records(exercises),
    )

    try:
        response = await asyncio.wait_for(llm_client.complete(prompt), timeout=timeout)
    except (asyncio.TimeoutError, TimeoutError):
        print(f"[analysis] LLM request timed out after {timeout}s", file=sys.stderr)
        return _failure(FAILURE_TIMEOUT)
    except Exception as e:
        print(f"[analysis] LLM request failed: {e}", file=sys.stderr)
        return _failure(FAILURE_CONNECTION)

    text = extract_text(response)
    if text is None:
        print("[analysis] LLM response had no text block", file=sys.stderr)
        return _failure(FAILURE_MALFORMED)

    return {"status": SUCCEEDED, "text": text, "failure": None}


class AnalysisRequester:
    """
    Runs at most one analysis request at a time.

    State moves idle -> requesting -> succeeded | failed. A trigger while a
    request is in flight gets a 'busy' result and the client is not called.
    No automatic retry.
    """

    def __init__(self, llm_client, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.llm_client = llm_client
        self.timeout = timeout
        self.state = IDLE
        self.last_result: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self.state == REQUESTING

    async def request(
        self,
        ranked: Sequence[Tuple[Dict[str, Any], Dict[str, Any]]],
        exercises: Sequence[Dict[str, Any]],
        knowledge_levels: Dict[str, int]
    ) -> Dict[str, Any]:
        if not self._lock.acquire(blocking=False):
            print("[analysis] Request ignored: another analysis is in flight", file=sys.stderr)
            return _failure(FAILURE_BUSY)

        try:
            self.state = REQUESTING
            result = await request_analysis(
                ranked, exercises, knowledge_levels, self.llm_client, timeout=self.timeout
            )
            self.state = SUCCEEDED if result["failure"] is None else FAILED
            self.last_result = result
            return result
        finally:
            if self.state == REQUESTING:
                # Cancelled mid-flight
                self.state = FAILED
            self._lock.release()
