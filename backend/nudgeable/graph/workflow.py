"""LangGraph workflow definition for transcript evaluation."""
from typing import TYPE_CHECKING, Literal
from langgraph.graph import StateGraph, END

from nudgeable.models import JudgeState

if TYPE_CHECKING:
    from nudgeable.agents.judge import JudgeProtocol


def route_after_parse(state: JudgeState) -> Literal["score_verdict", "__end__"]:
    """Stop early when the judge response could not be parsed."""
    if state.get("parse_error"):
        return END
    return "score_verdict"


def create_evaluation_workflow(judge: "JudgeProtocol"):
    """
    Create the evaluation workflow for one judge protocol.

    Graph Structure:
        ┌───────────────┐
        │ Build Request │  transcript + evaluation request
        └───────┬───────┘
                ▼
        ┌───────────────┐
        │  Call Judge   │  rubric instructions + request → raw text
        └───────┬───────┘
                ▼
        ┌───────────────┐
        │ Parse Verdict │──── (parse error) ───► END
        └───────┬───────┘
                ▼
        ┌───────────────┐
        │ Score Verdict │  recompute weighted overall
        └───────┬───────┘
                ▼
               END

    Model call failures raise out of the graph; parse failures are recorded
    in ``parse_error`` and end the run.
    """
    workflow = StateGraph(JudgeState)

    workflow.add_node("build_request", judge.build_request)
    workflow.add_node("call_judge", judge.call_judge)
    workflow.add_node("parse_verdict", judge.parse_response)
    workflow.add_node("score_verdict", judge.score_verdict)

    workflow.set_entry_point("build_request")
    workflow.add_edge("build_request", "call_judge")
    workflow.add_edge("call_judge", "parse_verdict")
    workflow.add_conditional_edges(
        "parse_verdict",
        route_after_parse,
        {
            "score_verdict": "score_verdict",
            END: END,
        }
    )
    workflow.add_edge("score_verdict", END)

    return workflow.compile()
