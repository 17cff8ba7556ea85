"""Prompt templates for the background alert reviewer."""

REVIEW_SYSTEM_PROMPT = """\
You are an AI background agent helping engineers diagnose application errors. \
Provide a concise summary, probable root cause, and a suggested fix."""

REVIEW_USER_PROMPT = """\
Analyze this alert and suggest next steps:

Title: {title}
Severity: {severity}
Message: {message}
URL: {url}
User Agent: {user_agent}
Stack Trace: {stack_trace}"""
