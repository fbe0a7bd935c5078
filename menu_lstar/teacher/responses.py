"""
Oracle query payloads and response parsing.

Payloads are JSON text so a human (or any external answerer) can read the
question; responses are free text parsed with a tolerant boolean grammar.
"""

import json
from typing import Any, Dict, Optional

CORRECT = "correct"
TRUE_SPELLINGS = {"true", "yes", "1"}


class MalformedPayload(ValueError):
    """Raised when a stored query payload or response cannot be parsed."""
    pass


def parse_bool(response: Optional[str]) -> bool:
    """Case-insensitive true/yes/1 are True, anything else is False."""
    if response is None:
        return False
    return str(response).strip().lower() in TRUE_SPELLINGS


def is_correct(response: Optional[str]) -> bool:
    """Whether an equivalence response declares the hypothesis correct."""
    return response is not None and response.strip().lower() == CORRECT


def membership_payload(candidate: str, concept: Optional[str],
                       category_examples: Dict[str, list],
                       asked: int, budget: int) -> str:
    return json.dumps({
        'candidate': candidate,
        'question': f"Is '{candidate}' an example of '{concept}'? Answer yes or no.",
        'target_concept': concept,
        'category_examples': category_examples,
        'progress': {'membership_queries': asked, 'max_membership_queries': budget},
    })


def equivalence_payload(hypothesis: Dict[str, Any], concept: Optional[str],
                        asked: int, budget: int) -> str:
    return json.dumps({
        'hypothesis': hypothesis,
        'target_concept': concept,
        'instructions': (
            "Reply 'correct' if the hypothesis accepts exactly the members of "
            f"'{concept}'. Otherwise reply with one input it classifies wrongly."
        ),
        'progress': {'equivalence_queries': asked, 'max_equivalence_queries': budget},
    })


def decode_payload(query_data: str) -> Dict[str, Any]:
    try:
        payload = json.loads(query_data)
    except (TypeError, ValueError) as e:
        raise MalformedPayload(f"Query payload is not JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedPayload("Query payload is not a JSON object")
    return payload


def payload_candidate(query_data: str) -> str:
    """Candidate string of a membership payload."""
    candidate = decode_payload(query_data).get('candidate')
    if not isinstance(candidate, str):
        raise MalformedPayload("Membership payload has no candidate string")
    return candidate


def payload_hypothesis(query_data: str) -> Dict[str, Any]:
    """Serialized hypothesis of an equivalence payload."""
    hypothesis = decode_payload(query_data).get('hypothesis')
    if not isinstance(hypothesis, dict):
        raise MalformedPayload("Equivalence payload has no hypothesis object")
    return hypothesis
