"""crediagent - Structured LLM output execution for credibility scoring.

crediagent sends prompts to OpenAI, Anthropic Claude and Google Gemini
models, validates their answers against Pydantic schemas with escalating
retries, and combines several models through consensus and aggregation.

Example:
    Run a prompt from the command line::

        $ crediagent run "Rate this profile" -m gpt-4o-mini -m claude-3-haiku-20240307

    Or use the library programmatically::

        from crediagent.config import ModelIdentity
        from crediagent.executor.agent import AgentExecutor
        from crediagent.providers import ModelInvoker, ProviderRegistry

        async with ProviderRegistry() as registry:
            executor = AgentExecutor(ModelInvoker(registry))
            envelope = await executor.execute_agent_typed(
                ModelIdentity(name="gpt-4o-mini"), prompt, ScoringResult
            )

Modules:
    config: Model identities, execution options, and YAML/environment loading.
    executor: Schema validation, prompt escalation, and the agent executors.
    providers: Provider integrations, registry, and the model invoker.
    analysis: Credibility analysis schemas and analyzer.
    cli: Command-line interface commands.
    exceptions: Custom exception hierarchy.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
