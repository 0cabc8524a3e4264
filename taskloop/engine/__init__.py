"""Turn loop and action-dispatch engine.

Modules:
    actions       - Action models (discriminated on ``type``)
    registry      - build_registry(), ActionRegistry
    dispatch      - dispatch() normalizing execution outcomes
    feedback      - format_feedback(), summarize()
    loop          - run_loop(), the turn state machine
    results       - Ok/Error/Halt outcomes and run results
    conversation  - append-only Conversation
    errors        - exception hierarchy
"""
