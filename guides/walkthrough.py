"""Walk an anonymous visitor through the sample Small Claims workflow."""

import asyncio
from pathlib import Path

from formflow import (
    Actor,
    RequiredStepsIncompleteError,
    WorkflowDefinitionStore,
    WorkflowService,
)
from formflow.persistence import InMemorySubmissionRepository
from formflow.sessions import InMemorySessionStore


async def main():
    service = WorkflowService(
        WorkflowDefinitionStore(Path(__file__).parent / "workflows"),
        InMemorySubmissionRepository(),
        InMemorySessionStore(),
    )
    actor = Actor.of(session_token="visitor-123")

    engine = await service.open("small-claims-filing", actor)
    await engine.start()
    print(engine.progress())

    await engine.advance(
        {
            "plaintiff_name": "Jane Doe",
            "defendant_name": "Acme Corp",
            "claim_amount": "2500",
            "is_business": "no",
        }
    )
    # SC-103 is hidden because is_business != "yes"
    print(engine.current_step().display_name(service.definitions.forms))

    try:
        await engine.advance({})
    except RequiredStepsIncompleteError as exc:
        print(exc.message)

    await engine.advance({"server_signature": "John Server"})
    print(await engine.is_complete(), engine.progress())
    await service.save(engine)


if __name__ == "__main__":
    asyncio.run(main())
