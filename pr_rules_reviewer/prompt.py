"""Review prompt construction."""

from __future__ import annotations

NO_ISSUES_SENTENCE = "No issues found based on the review rules."

REVIEW_PROMPT_TEMPLATE = """You are a code reviewer. Review the following code changes and provide feedback based EXCLUSIVELY on these rules:

{rules}

Code changes:
{diff}

Provide a concise review with:
1. Issues found (if any) according to the rules above
2. Specific suggestions for improvement (if applicable)
3. Line references where relevant

If no issues are found, simply say "{no_issues_sentence}\""""


def build_review_prompt(rules: str, diff: str) -> str:
    """Combine rules and diff into the reviewer instruction.

    Pure and deterministic: identical inputs always yield the identical string.
    """
    return REVIEW_PROMPT_TEMPLATE.format(
        rules=rules,
        diff=diff,
        no_issues_sentence=NO_ISSUES_SENTENCE,
    )
