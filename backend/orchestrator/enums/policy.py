"""
Product policies for the interruption cycle.

Policies are orthogonal to control states:
- State answers:  "What is the session doing?"
- Policy answers: "What should happen after the listener's question?"
"""

from __future__ import annotations

from enum import Enum


class ResumePolicy(str, Enum):
    """
    What happens to the script after an interruption has been answered.

    DISCARD:
        The rest of the script is dropped and the session completes.

    RESUME:
        The script stream is kept open; playback continues with the
        fragment after the interrupted one.

    RESTART:
        Script generation starts again from the topic.
    """

    DISCARD = "discard"
    RESUME = "resume"
    RESTART = "restart"


class AnswerContextMode(str, Enum):
    """
    Context handed to the generation backend with the listener's question.

    NONE:
        Empty context.

    TOPIC:
        The session topic.

    SCRIPT:
        The most recent script text already delivered to the listener.
    """

    NONE = "none"
    TOPIC = "topic"
    SCRIPT = "script"
