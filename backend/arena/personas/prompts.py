"""Prompt builders for stage conversations and batch analysis.

Pure functions: every builder returns strings and performs no I/O.
"""

import json

from arena.personas.registry import Persona
from arena.schemas.analysis import AnalysisRequest

_MARKDOWN_RULES = """Format your entire response with extremely clean markdown following these exact formatting rules:
1. Use double line breaks between sections
2. Use "## Section Title" format for headings with a line break after each heading
3. Use single bullet points (* not numbered lists) with a space after the asterisk
4. Keep paragraphs short and focused
5. Use proper spacing throughout"""

UPGRADE_SECTION = """

## Upgrade to Premium

* Access all 12 expert personas instead of just 3
* Get detailed competitor analysis with specific companies
* Receive comprehensive positioning strategies
* Unlock detailed audience insights and targeted recommendations"""


# ---------------------------------------------------------------------------
# Stage conversations
# ---------------------------------------------------------------------------


def build_stage_system_prompt(persona: Persona, idea_fields: dict, max_exchanges: int) -> str:
    """System instruction for one stage persona with the idea embedded as JSON."""
    idea_json = json.dumps(idea_fields, indent=2)
    return f"""You are {persona.name} - {persona.prompt}.
This is a summary of the user's business idea:
Context (triple-quoted JSON):
\"\"\"
{idea_json}
\"\"\"

Your goal: {persona.goal}

IMPORTANT CONVERSATION RULES:
1. Respond naturally in a conversational style as {persona.name}.
2. Ask one focused question at a time and keep each reply under 150 words.
3. The conversation is limited to {max_exchanges} replies from you. Use them to probe the points that matter most for your goal.
4. When you have gathered enough to evaluate the idea, close with your overall assessment and thank the user.
5. When you close the conversation, end your reply with this JSON object on its own line:
{{"stage_complete": true, "score": <0-10>, "takeaways": ["<short takeaway>", "..."]}}
"""


def build_transcript(messages: list[tuple[str, str]]) -> str:
    """Render ``(role, content)`` pairs as a plain transcript."""
    labels = {"user": "User", "evaluator": "Evaluator"}
    return "\n\n".join(f"{labels.get(role, role)}: {content}" for role, content in messages)


SUMMARY_SYSTEM = (
    "You summarize evaluation conversations about business ideas. Focus on the points the user made, "
    "including how they addressed concerns. Never refer to an AI; write \"it was a concern\" rather than "
    "\"the AI was concerned\"."
)


def build_summarization_prompt(transcript: str, persona: Persona) -> str:
    return f"""Summarize the following conversation between the user and {persona.name}.

Produce brief key points about what was learned about the business idea, a score from 0 to 10 reflecting
{persona.name}'s overall assessment, and any risks that would block the idea from succeeding.
Together the key points should tell the user what went well and where they can improve.

{transcript}
"""


# ---------------------------------------------------------------------------
# Batch analysis
# ---------------------------------------------------------------------------


def _idea_block(request: AnalysisRequest, *, include_revenue: bool = True) -> str:
    lines = [
        f"Name: {request.idea_name}",
        f"Description: {request.idea_description}",
        f"Target Audience: {request.target_audience or 'Not specified'}",
    ]
    if request.core_problem:
        lines.append(f"Core Problem Being Solved: {request.core_problem}")
    if request.unique_value:
        lines.append(f"Unique Value Proposition: {request.unique_value}")
    if include_revenue and request.revenue_strategy:
        lines.append(f"Revenue Strategy: {request.revenue_strategy}")
    return "\n".join(lines)


def build_feedback_prompt(request: AnalysisRequest) -> str:
    """User prompt asking one persona for its structured, personal reaction."""
    return f"""Tell us how you feel about this business idea. Is it interesting to you and people like you?
Tailor your response to be personal and include your own experience and feelings about the idea, in particular
whether the idea actually solves a problem that you experience in your day to day life.

{_idea_block(request)}

Share your honest personal reaction:

1. Ratings (1-10 scale, where 1 is poor and 10 is excellent):
   - Market Potential: Based on your experience, how much demand do you see for this?
   - Feasibility: How realistic does this idea seem to you?
   - Innovation: How new or different does this feel to you?
   - Competitiveness: Would you choose this over existing alternatives?
   - Profit Potential: Do you think this could be financially successful?
2. Personal Opinion: Your honest gut reaction in 1-2 sentences
3. Likes: 1-3 aspects you personally like about this idea
4. Dislikes: 1-3 aspects that concern you or would prevent you from using it
5. Suggestions: 1-3 changes that would make this more appealing to you
6. Overall Summary: Your brief personal assessment (maximum 150 characters)"""


COMPETITOR_SYSTEM = (
    "You are a market research expert who identifies and analyzes competing companies in the market. "
    "Provide thorough, factual information about competitors based on your search results. Use ## for "
    "section headings and bullet points for key points. Keep your writing style consistent and professional."
)


def build_competitor_prompt(request: AnalysisRequest) -> str:
    return f"""Perform a competitor analysis for the following business idea:

{_idea_block(request)}

Search for 3-5 existing companies or products that are similar to this idea and provide a detailed analysis.

{_MARKDOWN_RULES}

Structure your analysis with these exact sections:

## Key Competitors

## Comparison to Your Idea

## Market Differentiation

## Target Audience Analysis

## Market Saturation Assessment

Assess the market saturation level on a scale of 1-100, where:
* 1-30: Low saturation (few competitors, unique idea, lots of opportunity)
* 31-70: Medium saturation (some established competitors but room for innovation)
* 71-100: High saturation (crowded market, difficult to differentiate)

Provide this as a numerical score (1-100) and explain your reasoning.
Include hyperlinks to sources where relevant."""


SATURATION_SYSTEM = "You extract a single market saturation score from a competitor analysis."


def build_saturation_prompt(competitor_analysis: str) -> str:
    return f"""Read the competitor analysis below and report its market saturation score on a 1-100 scale
(1 = virtually no competitors, 100 = extremely crowded market), with a one-sentence rationale.
If the analysis states a score, use it.

{competitor_analysis}"""


PREMIUM_SUMMARY_SYSTEM = (
    "You are a strategic business advisor who provides concise, actionable insights based on personal "
    "feedback from different user personas. Focus on what different personas like, dislike, and suggest "
    "rather than pure business metrics. Your primary goal is to help the user improve their idea with "
    "specific, actionable changes."
)

FREE_SUMMARY_SYSTEM = (
    "You are a business advisor who provides brief, actionable insights based on feedback. Keep your "
    "response concise and to the point. Format in clean markdown with brief sections."
)


def _ratings_block(overall_score: int, aggregate_ratings: dict[str, float]) -> str:
    lines = [f"Overall Score: {overall_score}/100", "", "Overall Ratings (average across personas, scale 1-10):"]
    for dimension, value in aggregate_ratings.items():
        lines.append(f"- {dimension.replace('_', ' ').title()}: {value}")
    return "\n".join(lines)


def build_premium_summary_prompt(
    request: AnalysisRequest,
    overall_score: int,
    aggregate_ratings: dict[str, float],
    competitor_analysis: str | None,
    feedback: list[dict],
) -> str:
    return f"""Based on feedback from multiple personas about this business idea, provide a brief executive summary
with actionable next steps.

Business Idea:
{_idea_block(request)}

{_ratings_block(overall_score, aggregate_ratings)}

Competitor Analysis:
{competitor_analysis or "Not available"}

Detailed Feedback From Each Persona:
{json.dumps(feedback)}

{_MARKDOWN_RULES}

Structure your executive summary with these exact sections:

## What Works Well

## What Needs Improvement

## Competitive Landscape

## Recommended Changes

## Audience Considerations

## Next Steps to Increase Your Score

Keep your response under 300 words total. Do not include any preamble; start directly with the markdown headings."""


def build_free_summary_prompt(
    request: AnalysisRequest,
    overall_score: int,
    aggregate_ratings: dict[str, float],
    feedback: list[dict],
) -> str:
    slim = [
        {k: entry[k] for k in ("persona", "likes", "dislikes", "suggestions") if k in entry}
        for entry in feedback
    ]
    return f"""Provide a brief summary for this business idea based on persona feedback.

Business Idea:
{_idea_block(request, include_revenue=False)}

{_ratings_block(overall_score, aggregate_ratings)}

Feedback From Personas:
{json.dumps(slim)}

Format your response as clear markdown with double line breaks between sections and bullet points.

Structure your summary with these sections:

## Key Strengths

## Areas for Improvement

## Recommended Next Steps

Keep your response under 200 words."""
