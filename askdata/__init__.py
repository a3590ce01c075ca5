# askdata package
# Phase-gated orchestration of a tool-calling model that answers data questions.
