"""Steerable-Agent.

An interruptible, resumable execution core for agent loops.

High-level architecture
-----------------------

- ``steerable_agent.agent_core``:

  - A LangGraph-based reasoning/acting loop with cooperative interruption.
  - Phase hooks that observe every iteration and may stop the run.
  - Point-in-time snapshots that a later run resumes from.

- ``steerable_agent.core``:

  - Environment driven settings, logging configuration and Logfire tracing.

Typical workflow
----------------

1. Build ``ControllerDeps`` with a reasoner and an actor.
2. Create an ``ExecutionController`` and register hooks on its pipeline.
3. ``execute`` a message; ``interrupt`` it from another task if needed.
4. If the run was interrupted with state preserved, ``resume`` it later.
"""
