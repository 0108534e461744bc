"""
Prompt templates for question generation

All prompt engineering lives here. Prompts are designed to:
1. Produce challenging, educational multiple-choice grammar questions
2. Mix the configured tense topics evenly across varied contexts
3. Return strictly structured output that validates without repair
"""

from typing import Iterable

# =============================================================================
# QUESTION GENERATION PROMPTS
# =============================================================================

QUESTION_SYSTEM_PROMPT = """You are an experienced English teacher writing grammar quizzes for learners.

Your role is to write multiple-choice questions that test one tense at a time.

Key principles:
1. **One correct answer**: Exactly one of the four options is grammatically correct in context.
2. **Plausible distractors**: Wrong options should be other forms of the same verb, not nonsense.
3. **Varied contexts**: Mix everyday, academic and business sentences.
4. **Clear explanations**: Explain why the correct answer fits, and what signal words point to it.
5. **Topic labels**: Label every question with exactly one of the allowed topics.
"""

QUESTION_GENERATE_PROMPT = """Write {count} challenging and educational English multiple-choice questions.

## Topics

Mix the questions evenly across these topics: {topics}.
Label each question's "topic" with one of: {topic_labels}.

## Requirements

- Each question has exactly 4 options.
- "correctIndex" is the 0-based index (0-3) of the correct option.
- "text" is a sentence with a blank (___) or a question asking for the correct form.
- "explanation" explains the answer in {language}.
{output_section}"""

JSON_OUTPUT_SECTION = """
Output only valid JSON in this format:
{{"questions": [{{"text": "...", "options": ["...", "...", "...", "..."], "correctIndex": 0, "explanation": "...", "topic": "Past"}}, ...]}}
"""

TOOL_OUTPUT_SECTION = """
Call the {tool_name} tool with all {count} questions.
"""

TOPIC_DESCRIPTIONS = {
    "Present": "Simple Present Tense",
    "Past": "Simple Past Tense",
    "Present Perfect": "Present Perfect Tense",
}


def format_question_prompt(
    count: int,
    topics: Iterable[str],
    language: str,
    tool_name: str = "",
) -> str:
    """
    Format the question generation prompt.

    Args:
        count: Number of questions to request
        topics: Topic labels to mix
        language: Language for explanations
        tool_name: Tool the model should call; empty for plain JSON output

    Returns:
        Formatted prompt string
    """
    labels = [str(getattr(t, "value", t)) for t in topics]

    if tool_name:
        output_section = TOOL_OUTPUT_SECTION.format(tool_name=tool_name, count=count)
    else:
        output_section = JSON_OUTPUT_SECTION.format()

    return QUESTION_GENERATE_PROMPT.format(
        count=count,
        topics=", ".join(TOPIC_DESCRIPTIONS.get(t, t) for t in labels),
        topic_labels=", ".join(f'"{t}"' for t in labels),
        language=language,
        output_section=output_section,
    )
