"""Narratives written by a controlflow agent instead of a local Ollama model."""

import controlflow as cf

from workdigest.errors import CollaboratorUnavailableError
from workdigest.utilities.loggers import get_logger

logger = get_logger('app.agents')

narrator = cf.Agent(
    name='narrator',
    instructions="""
    you write concise, factual summaries of an engineer's work for their management chain.

    - only describe activity present in the provided data; never invent work
    - keep the tone professional and neutral
    - when asked to extract a list, return one item per line, each starting with "- "
    - if nothing matches what was asked for, say so in one line
    """,
)


class AgentNarrativeGenerator:
    """A `NarrativeGenerator` that runs each prompt as a controlflow task"""

    def __init__(self, agent: cf.Agent = narrator) -> None:
        self.agent = agent

    def complete(self, prompt: str) -> str:
        logger.info(f'Requesting completion from agent {self.agent.name}')
        try:
            return cf.run(
                'Write the requested text',
                agents=[self.agent],
                instructions=prompt,
                result_type=str,
            )
        except Exception as e:
            logger.error(f'Agent {self.agent.name} failed: {e}')
            raise CollaboratorUnavailableError(f'Agent {self.agent.name} failed: {e}') from e
