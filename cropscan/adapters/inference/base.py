from cropscan.orchestrator.errors import InvalidInputError


class InferenceAdapter:
    """Text generation backend. generate() returns the raw reply text or raises a PipelineError."""

    name = "base"
    ready = True

    async def generate(self, prompt: str, consent: bool) -> str:
        raise NotImplementedError

    def check_request(self, prompt: str, consent: bool):
        # Consent is a regulatory gate: refuse before any network traffic
        if not consent:
            raise InvalidInputError("User consent required for AI processing.")
        if not prompt or not prompt.strip():
            raise InvalidInputError("Prompt cannot be empty")
