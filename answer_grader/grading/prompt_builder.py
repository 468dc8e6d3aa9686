"""
Prompt builder for answer grading.

Constructs the grading prompt sent to the language model. The prompt
has two variants, with and without a reference answer, and both ask
for the same JSON output shape so one parser handles either.
"""

from answer_grader.models import Question


class PromptBuilder:
    """
    Builds grading prompts for handwritten answers.

    The prompts are designed to:
    1. Give the model the question, subject and mark allocation
    2. Name the grading criteria explicitly
    3. Anchor grading on the answer key when one exists
    4. Produce consistent JSON output
    """

    GRADING_CRITERIA: tuple[str, ...] = (
        "Correctness of the content",
        "Completeness of the response",
        "Clarity of explanation",
        "Use of appropriate terminology",
        "Logical structure and reasoning",
    )

    WITH_KEY_INTRO = (
        "You are an expert teacher grading a student's answer. "
        "A reference answer is provided below; use it as the standard for "
        "correctness, but award credit for equivalent answers expressed differently."
    )

    WITHOUT_KEY_INTRO = (
        "You are an expert teacher grading a student's answer. "
        "No answer key is available. Evaluate this response based on your "
        "subject-matter expertise and standard educational criteria."
    )

    OCR_NOTE = (
        "The student answer was transcribed from a handwritten image by OCR, "
        "so ignore obvious recognition errors in spelling and spacing."
    )

    @staticmethod
    def build_grading_prompt(question: Question, student_answer: str) -> str:
        """
        Build the grading prompt.

        Args:
            question: The question being graded.
            student_answer: The extracted answer text.

        Returns:
            The formatted prompt.
        """
        if question.has_answer_key:
            intro = PromptBuilder.WITH_KEY_INTRO
            reference = f"\nREFERENCE ANSWER:\n{question.answer_key.strip()}\n"  # type: ignore[union-attr]
            closing = (
                "Compare the student answer with the reference answer and give "
                "partial credit for partially correct answers."
            )
        else:
            intro = PromptBuilder.WITHOUT_KEY_INTRO
            reference = ""
            closing = (
                "Be fair and consider partial credit for partially correct answers. "
                "Base your evaluation on educational standards for this type of question."
            )

        prompt = f"""{intro}

QUESTION: {question.text}
SUBJECT: {question.subject_name}
MAXIMUM MARKS: {question.max_marks}
{reference}
STUDENT ANSWER:
---BEGIN ANSWER---
{student_answer}
---END ANSWER---

{PromptBuilder.OCR_NOTE}

Please grade this answer based on:
{PromptBuilder._format_criteria()}

Provide:
1. MARKS: Give a specific score out of {question.max_marks} marks
2. FEEDBACK: Brief constructive feedback (2-3 sentences)
3. STRENGTHS: What the student did well
4. IMPROVEMENTS: Specific areas for improvement
5. CONFIDENCE: Your confidence in this grading (1-10 scale)

{PromptBuilder.output_format(question.max_marks)}

{closing}"""

        return prompt

    @staticmethod
    def output_format(max_marks: int) -> str:
        """The JSON shape requested from the model."""
        return f"""OUTPUT FORMAT (respond with ONLY this JSON, no other text):
{{
  "marks": <number from 0 to {max_marks}>,
  "feedback": "<string>",
  "strengths": "<string>",
  "improvements": "<string>",
  "confidence": <number from 1 to 10>
}}"""

    @staticmethod
    def _format_criteria() -> str:
        return "\n".join(
            f"{i}. {criterion}" for i, criterion in enumerate(PromptBuilder.GRADING_CRITERIA, start=1)
        )
