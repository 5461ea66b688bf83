from sms_flows.domain import (
    Flow,
    FlowSchema,
    Message,
    Question,
    QuestionKind,
    Reply,
    Trigger,
)

# ==============================================================================
# ROOT FLOW
# ==============================================================================

# --- Greet, ask for a name, then offer the survey ---
ROOT = (
    Flow("root")
    .append("greeting", lambda ctx, user: Reply("Hi! Thanks for texting us."))
    .append(
        "ask_name",
        lambda ctx, user: Question(
            "What is your name?",
            kind=QuestionKind.TEXT,
            max_attempts=2,
            failed_answer_reply="Sorry, I didn't catch that. What is your name?",
        ),
    )
    .append(
        "ask_survey",
        lambda ctx, user: Question(
            f"Nice to meet you, {ctx['ask_name']['answer']}! "
            "Would you like to take a short survey? (yes/no)",
            kind=QuestionKind.BOOL,
            max_attempts=2,
            failed_answer_reply="Please answer yes or no.",
        ),
    )
    .append(
        "route",
        lambda ctx, user: Trigger("survey" if ctx["ask_survey"]["answer"] else "goodbye"),
    )
)

# ==============================================================================
# SURVEY FLOW
# ==============================================================================

SURVEY = (
    Flow("survey")
    .append(
        "favorite_color",
        lambda ctx, user: Question(
            "What is your favorite color?",
            kind=QuestionKind.MULTIPLE_CHOICE,
            choices=["Red", "Green", "Blue"],
            max_attempts=2,
            continue_on_fail=True,
            failed_answer_reply="Please reply with 1, 2 or 3.",
            on_fail_reply="No problem, let's move on.",
        ),
    )
    .append(
        "recommend",
        lambda ctx, user: Question(
            "Would you recommend us to a friend? (yes/no)",
            kind=QuestionKind.BOOL,
        ),
    )
    .append("thanks", lambda ctx, user: Reply("Thanks for taking our survey!"))
)

# ==============================================================================
# GOODBYE FLOW
# ==============================================================================

GOODBYE = Flow("goodbye").append(
    "farewell", lambda ctx, user: Reply("No worries. Text us any time!")
)

SCHEMA = FlowSchema(
    {
        "survey": SURVEY,
        "endings": FlowSchema({"goodbye": GOODBYE}),
    }
)


def on_interaction_end(history, user):
    """Notifies an operator when someone finishes the survey."""
    answered = [entry for entry in history if entry["flow_name"] == "survey"]
    if user and user.get("operator") and answered:
        return Message(f"Survey completed by {user.get('phone')}", to=user["operator"])
    return None
