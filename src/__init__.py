"""Cleaning services scheduling & quotation agent.

Architecture Overview
=====================

Two LangGraph workflows share one Qdrant collection:

1. **Scheduling validation** (``src/scheduling.py``): the company's
   scheduling rules are pulled from the store and turned into a Python
   validator by the LLM; in parallel the customer's free-text request is
   turned into a Python parameter extractor.  Both snippets are checked
   structurally, stitched into one script and executed in a remote Piston
   sandbox, whose JSON output decides ``validation_passed`` /
   ``validation_failed``.

2. **Quotation** (``src/quotation.py``): retrieves the service
   descriptions closest to the request, asks the LLM for matching service
   names, fans out one pricing-table call per service and renders the
   final quotation.

Key Design Decisions
--------------------
- **Generated code is untrusted**: ``src/executor.py`` parses both snippets
  with ``ast`` before anything is sent to the sandbox, and every sandbox
  request carries explicit run / compile timeouts and a memory limit.
- **Explicit dependencies**: the document store, sandbox client and LLM are
  constructed by the caller and passed into the graph factories.
- **Explicit join**: the two scheduling branches converge on a list-source
  edge, so the sandbox stage only runs once both have finished.
- **Distinct failures**: contract violations, sandbox crashes and unusable
  output raise separate ``ValidationExecutionError`` subclasses.

Package Structure
-----------------
- ``src/config.py``: configuration from environment variables / SSM
- ``src/prompts.py``: code-generation and quotation prompts
- ``src/codegen.py``: LLM code generators
- ``src/executor.py``: contract check, script assembly, output parsing
- ``src/scheduling.py`` / ``src/quotation.py``: LangGraph workflows
- ``src/ingest.py``: seed documents and scheduling rules
- ``src/services/``: Qdrant store, Piston client, CloudWatch metrics
- ``src/api/``: FastAPI routes and Pydantic schemas
- ``src/server.py`` / ``src/main.py``: HTTP server and CLI
"""
