import re

# Best effort: depends on the model writing an "Action Items:" heading.
ACTION_ITEMS_PATTERN = re.compile(r"Action Items:(.*?)(?=\n\n|\Z)", re.DOTALL)


def extract_action_items(summary: str) -> str:
    match = ACTION_ITEMS_PATTERN.search(summary)
    return match.group(1).strip() if match else ""
