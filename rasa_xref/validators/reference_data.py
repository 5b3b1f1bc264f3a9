"""Reference data for cross-file validation — framework constants.

These are Rasa's own conventions, not project configuration.
"""

# ──────────────────────────────────────────────────────────────────────
# BUILT-IN ACTIONS (always valid, never declared)
# ──────────────────────────────────────────────────────────────────────

# Default actions every Rasa assistant has without declaring them in the domain
BUILTIN_ACTIONS = frozenset({
    "action_listen",
    "action_restart",
    "action_session_start",
    "action_default_fallback",
    "action_deactivate_loop",
    "action_revert_fallback_events",
    "action_default_ask_affirmation",
    "action_default_ask_rephrase",
    "action_two_stage_fallback",
    "action_unlikely_intent",
    "action_back",
    "action_extract_slots",
})

# Actions with this prefix are canned responses, declared under `responses:`
RESPONSE_PREFIX = "utter_"

# ──────────────────────────────────────────────────────────────────────
# DOCUMENT KEYS
# ──────────────────────────────────────────────────────────────────────

# Top-level domain sections, per component kind
DOMAIN_SECTIONS = {
    "intent": "intents",
    "entity": "entities",
    "slot": "slots",
    "response": "responses",
    "action": "actions",
    "form": "forms",
}

# Top-level keys of training data files
NLU_KEY = "nlu"
STORIES_KEY = "stories"
RULES_KEY = "rules"

# Step fields
STEPS_KEY = "steps"
CONDITION_KEY = "condition"
OR_KEY = "or"
INTENT_KEY = "intent"
ACTION_KEY = "action"
ACTIVE_LOOP_KEY = "active_loop"
SLOT_WAS_SET_KEY = "slot_was_set"
