"""MCP Prompts: pre-built interaction templates for clinical monitoring journeys."""

from __future__ import annotations

from fastmcp import FastMCP


def register_monitoring_prompts(mcp: FastMCP) -> None:
    """Register monitoring domain MCP prompts."""

    @mcp.prompt()
    def ward_round_prompt() -> str:
        """Prompt template for a population-wide ward round."""
        return """Let's do a ward round across all monitored patients. Please:

1. Check system status and tell me if we are running on demo data
2. List the five patients with the lowest composite health scores
3. Summarize the active alert feed; it is ordered by lowest health score first
4. Point out any population-level patterns in glucose bands or risk levels

Keep it short and factual. Scores are decision support, not diagnoses."""

    @mcp.prompt()
    def patient_review_prompt(patient_id: str) -> str:
        """Prompt template for reviewing one patient's recent history."""
        return f"""Review patient {patient_id} over the last 24 hours. I'd like to:

1. See the current composite health score and which components pull it down
2. Check time in range and glucose variability
3. See whether the score is improving, stable or declining
4. Identify the highest relevant risk and how it has moved

Flag anything that needs a clinician's attention now."""
