"""Default prompts and post templates.

Post templates use ``str.format`` placeholders: ``{title}``, ``{summary}``
and ``{url}``.
"""

DEFAULT_SCREENING_PROMPT = """You are screening a press release page and its attached documents.

Decide whether the page is worth summarizing for readers who follow policy news.

Answer with one of:
- "yes": the page and its attachments contain substantive material worth a summary.
- "no": the page is routine (personnel notices, event schedules, link-only pages).
- "wait": the page announces material that is not published yet, for example
  "materials will be posted later" or attachments that are still missing.

Explain your reasoning first, then give the verdict.
Respond with JSON: {"reasoning": "...", "verdict": "yes" | "no" | "wait"}
"""

DEFAULT_SUMMARIZING_PROMPT = """Summarize the press release page and its attached documents.

1. For every attached document, record its metadata (title, issuer, date),
   list its key points and write a short summary.
2. Write a first summary of the whole release.
3. List parts of the first summary that can be omitted.
4. List important points the first summary missed.
5. Write the final summary in at most 400 characters, plain text, no markdown.

Respond with JSON matching this shape:
{"documents": [{"metadata": "...", "key_points": ["..."], "summary": "..."}],
 "first_summary": "...", "omissibles": ["..."], "missed_items": ["..."],
 "final_summary": "..."}
"""

DEFAULT_POST_TEMPLATE = """{title}

{summary}

{url}"""

DEFAULT_NOT_VALUABLE_POST_TEMPLATE = """{title}

(No summary for this release.)

{url}"""
