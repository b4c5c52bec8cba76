"""
LLM provider service with mock fallback.

The model is only asked to turn unstructured BOM text into item JSON and to
draft RFQ/contract prose. Scoring and state changes never depend on it.
"""
from typing import Any, Dict, List, Optional
import json
import re

from procureflow.core.config import settings
from procureflow.core.errors import UpstreamError, UpstreamTimeout
from procureflow.core.logging import get_logger

logger = get_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "You extract procurement line items from bill-of-materials documents. "
    "Return ONLY valid JSON, no additional text."
)

EXTRACTION_PROMPT = """Extract procurement items from this BOM document and return as structured JSON:

DOCUMENT CONTENT:
{document}

Use this structure:
{{
  "projectName": "string",
  "items": [
    {{
      "id": "item_001",
      "category": "Furniture|Lighting|Textiles|Bathroom|Electronics|Appliances|HVAC",
      "subcategory": "Bedroom|Lobby|Restaurant|Bathroom|Conference",
      "name": "full item name",
      "quantity": number,
      "unitPrice": number,
      "specifications": {{"dimensions": "L x W x H", "material": "", "finish": "", "color": "", "weight": ""}},
      "compliance": {{
        "fireRatingRequired": boolean,
        "moistureZone": "none|wet",
        "adaRelevant": boolean,
        "certificationsRequired": ["..."],
        "certifications": ["certifications the item already holds"]
      }}
    }}
  ]
}}

Extract at most {item_count} items."""

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def provider_enabled() -> bool:
    """True when a real LLM provider is configured with credentials."""
    if settings.LLM_PROVIDER == "openai":
        return bool(settings.OPENAI_API_KEY)
    if settings.LLM_PROVIDER == "anthropic":
        return bool(settings.ANTHROPIC_API_KEY)
    return False


def extract_items(raw_document: str, item_count: int = 30) -> Dict[str, Any]:
    """
    Ask the configured LLM for item JSON.

    Raises:
        UpstreamTimeout: the provider did not answer within UPSTREAM_TIMEOUT_SECONDS
        UpstreamError: no provider configured, provider failure, or unparseable output
    """
    prompt = EXTRACTION_PROMPT.format(document=raw_document, item_count=item_count)
    if settings.LLM_PROVIDER == "openai" and settings.OPENAI_API_KEY:
        text = _openai_chat(EXTRACTION_SYSTEM_PROMPT, prompt, json_mode=True)
    elif settings.LLM_PROVIDER == "anthropic" and settings.ANTHROPIC_API_KEY:
        text = _anthropic_chat(EXTRACTION_SYSTEM_PROMPT, prompt)
    else:
        raise UpstreamError(f"LLM provider '{settings.LLM_PROVIDER}' is not configured for extraction")
    return parse_json_response(text)


def parse_json_response(text: Optional[str]) -> Dict[str, Any]:
    """Parse model output as a JSON object, tolerating markdown code fences."""
    if not text:
        raise UpstreamError("LLM returned an empty response")
    cleaned = _FENCE.sub("", text.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise UpstreamError(f"Could not parse extraction results: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamError("Extraction results must be a JSON object")
    return data


def generate_rfq_document(rfq_id: str, project_name: str, due_date: str, supplier_name: str,
                          items: List[Dict[str, Any]],
                          compliance_issues: Optional[List[Dict[str, Any]]] = None) -> str:
    """Generate an RFQ document for one supplier."""
    if provider_enabled():
        prompt = (
            f"Generate a professional Request for Quote (RFQ) document in markdown.\n"
            f"RFQ Number: {rfq_id}\nProject: {project_name}\nResponse Deadline: {due_date}\n"
            f"Supplier: {supplier_name}\n\nItems:\n{json.dumps(items, indent=2, default=str)}\n\n"
            f"Compliance requirements:\n{json.dumps(compliance_issues or [], indent=2, default=str)}\n\n"
            "Terms: Net 30 after delivery, phased delivery, minimum 2 year warranty, "
            "quote validity 60 days."
        )
        try:
            return _chat(prompt)
        except UpstreamError as e:
            logger.error(f"LLM RFQ drafting failed, using template: {e}")
    return _mock_rfq_document(rfq_id, project_name, due_date, supplier_name, items, compliance_issues)


def generate_contract_document(contract_id: str, bid: Dict[str, Any]) -> str:
    """Generate a draft procurement contract from an accepted bid."""
    if provider_enabled():
        prompt = (
            "Generate a professional procurement contract in markdown covering parties, pricing "
            "(Net 30), delivery, warranty, compliance, termination and signatures.\n\n"
            f"Contract ID: {contract_id}\nBid details:\n{json.dumps(bid, indent=2, default=str)}"
        )
        try:
            return _chat(prompt)
        except UpstreamError as e:
            logger.error(f"LLM contract drafting failed, using template: {e}")
    return _mock_contract_document(contract_id, bid)


# ============= MOCK IMPLEMENTATIONS =============

def _mock_rfq_document(rfq_id: str, project_name: str, due_date: str, supplier_name: str,
                       items: List[Dict[str, Any]],
                       compliance_issues: Optional[List[Dict[str, Any]]] = None) -> str:
    """Generate a deterministic RFQ document."""
    lines = "\n".join(
        f"| {n} | {item.get('itemName')} | {item.get('quantity')} | {item.get('estimatedUnitPrice')} |"
        for n, item in enumerate(items, start=1)
    ) or "| - | No items | - | - |"
    compliance_text = "\n".join(
        f"- {issue.get('itemName')}: {issue.get('recommendation')}" for issue in (compliance_issues or [])
    ) or "- All items must ship with their applicable certifications"

    return f"""# Request for Quote {rfq_id}

**Project:** {project_name}
**Supplier:** {supplier_name}
**Response Deadline:** {due_date}

## Items

| Line | Item | Quantity | Est. Unit Price |
|---|---|---|---|
{lines}

## Compliance Requirements
{compliance_text}

## Terms & Conditions
- Payment: Net 30 after delivery
- Delivery: Phased delivery to project site
- Warranty: Minimum 2 years on all items
- Insurance: Certificate of insurance required

## Bidding Instructions
Provide per-unit pricing with volume discounts, shipping costs, lead times per item
and all compliance certifications. Quotes must remain valid for 60 days.
"""


def _mock_contract_document(contract_id: str, bid: Dict[str, Any]) -> str:
    """Generate a deterministic contract draft."""
    return f"""# Procurement Contract {contract_id}

**Buyer:** {settings.APP_NAME} Procurement
**Supplier:** {bid.get('supplierName') or bid.get('supplierId')}

1. **Scope.** The supplier delivers the items quoted in bid {bid.get('bidId')}.
2. **Price.** Total contract value of ${bid.get('totalBidAmount')}, payable Net 30 after delivery.
3. **Delivery.** Average lead time of {bid.get('averageLeadTimeWeeks')} weeks from order confirmation.
4. **Warranty.** {bid.get('warrantyYears')} years on all items.
5. **Compliance.** All items ship with the certifications listed in the RFQ.
6. **Termination.** Either party may terminate for material breach with 30 days written notice.

Signed: ______________________ (Buyer)    ______________________ (Supplier)
"""


# ============= REAL LLM IMPLEMENTATIONS =============

def _chat(prompt: str) -> str:
    system = "You are a hospitality procurement specialist."
    if settings.LLM_PROVIDER == "openai":
        return _openai_chat(system, prompt)
    return _anthropic_chat(system, prompt)


def _openai_chat(system: str, prompt: str, json_mode: bool = False) -> str:
    """OpenAI chat completion."""
    import openai

    client = openai.OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
    kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            **kwargs,
        )
    except openai.APITimeoutError as e:
        raise UpstreamTimeout(f"OpenAI timed out after {settings.UPSTREAM_TIMEOUT_SECONDS}s") from e
    except openai.OpenAIError as e:
        logger.error(f"OpenAI error: {e}")
        raise UpstreamError(f"OpenAI error: {e}") from e
    return response.choices[0].message.content


def _anthropic_chat(system: str, prompt: str) -> str:
    """Anthropic messages completion."""
    import anthropic

    client = anthropic.Anthropic(api_key=settings.ANTHROPIC_API_KEY, timeout=settings.UPSTREAM_TIMEOUT_SECONDS)
    try:
        response = client.messages.create(
            model=settings.ANTHROPIC_MODEL,
            max_tokens=4096,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APITimeoutError as e:
        raise UpstreamTimeout(f"Anthropic timed out after {settings.UPSTREAM_TIMEOUT_SECONDS}s") from e
    except anthropic.AnthropicError as e:
        logger.error(f"Anthropic error: {e}")
        raise UpstreamError(f"Anthropic error: {e}") from e
    return response.content[0].text
