"""Placeholder sessions for sources with no usable data on disk."""

from datetime import datetime, timedelta
from typing import Optional

from .models import ROLE_ASSISTANT, ROLE_USER, SYNTHETIC_KEY, Message, Session

# (hours ago, title, prompt, response, topic)
_SAMPLES: dict[str, list[tuple[int, str, str, str, str]]] = {
    "claude_code": [
        (24, "Refactor authentication middleware",
         "Can you split the auth middleware into token parsing and permission checks?",
         "Sure. I'll extract a parse_token helper and move the role checks into a separate dependency...",
         "refactoring"),
        (12, "Fix flaky integration test",
         "The upload test fails intermittently on CI, can you take a look?",
         "The test depends on wall-clock ordering of two background tasks. Waiting on the task handle fixes it...",
         "testing"),
        (6, "Add pagination to list endpoint",
         "Add cursor based pagination to GET /items.",
         "I added an opaque cursor built from the last item's id and creation time, plus a limit parameter...",
         "api"),
    ],
    "gemini_cli": [
        (24, "Explain a SQL query plan",
         "Why is this query doing a sequential scan on orders?",
         "The filter wraps the indexed column in a function call, so the planner cannot use the index...",
         "database"),
        (12, "Write a shell one-liner",
         "Find the ten largest files under the current directory.",
         "Use du with sort: du -ah . | sort -rh | head -n 10",
         "shell"),
        (6, "Summarize a design document",
         "Summarize the caching proposal in three bullet points.",
         "1) Add a read-through cache in front of the catalog 2) Invalidate on write events 3) Cap entries by size...",
         "writing"),
    ],
    "amazon_q": [
        (24, "AWS EC2 Instance Management",
         "How do I create an EC2 instance with auto-scaling?",
         "To create an EC2 instance with auto-scaling, you need to: 1) Create a launch template "
         "2) Create an auto-scaling group 3) Configure scaling policies...",
         "ec2"),
        (12, "S3 Bucket Security Configuration",
         "What are the best practices for securing S3 buckets?",
         "Here are the key S3 security practices: 1) Enable versioning 2) Configure bucket policies "
         "3) Use IAM roles 4) Enable access logging...",
         "s3"),
        (6, "Lambda Function Optimization",
         "How can I optimize my Lambda function for better performance?",
         "To optimize Lambda performance: 1) Right-size memory allocation 2) Minimize cold starts "
         "3) Use connection pooling 4) Optimize code and dependencies...",
         "lambda"),
    ],
}

_GENERIC = _SAMPLES["claude_code"]


def generate_fallback(source: str, now: Optional[datetime] = None) -> list[Session]:
    """Build a fixed set of illustrative sessions, each flagged as synthetic.

    The shape is deterministic; only timestamps move with ``now``.
    """
    now = now or datetime.now()
    sessions = []
    for index, (hours_ago, title, prompt, response, topic) in enumerate(_SAMPLES.get(source, _GENERIC), 1):
        session_id = f"{source}-fallback-{index}"
        started = now - timedelta(hours=hours_ago)
        message_meta = {"topic": topic, SYNTHETIC_KEY: "true"}
        sessions.append(Session(
            id=session_id,
            source=source,
            timestamp=started,
            title=title,
            messages=[
                Message(
                    id=f"{session_id}-user",
                    role=ROLE_USER,
                    content=prompt,
                    timestamp=started,
                    metadata=dict(message_meta),
                ),
                Message(
                    id=f"{session_id}-assistant",
                    role=ROLE_ASSISTANT,
                    content=response,
                    timestamp=started + timedelta(minutes=1),
                    metadata=dict(message_meta),
                ),
            ],
            metadata={
                SYNTHETIC_KEY: "true",
                "source_type": f"{source}_fallback",
                "topic": topic,
            },
        ))
    return sessions
