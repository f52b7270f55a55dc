from cropscan.adapters.inference.base import InferenceAdapter

_CANNED = (
    "Early Blight\n"
    "Severity: 2\n"
    "Description: Dark brown spots with concentric rings on older leaves, "
    "surrounded by yellowing tissue. Spreads upward in warm, humid weather.\n"
    "Actions:\n"
    "1. Remove affected leaves and dispose of them away from the field\n"
    "2. Apply a copper-based fungicide every 7-10 days\n"
    "3. Monitor new growth twice a week\n"
    "Scientific name: Alternaria solani\n"
    "Type: fungal"
)


class MockInference(InferenceAdapter):
    name = "mock"

    def __init__(self, status_store, reply: str = _CANNED):
        self.status = status_store
        self.reply = reply
        self.calls = 0

    async def generate(self, prompt: str, consent: bool) -> str:
        self.check_request(prompt, consent)
        self.calls += 1
        self.status.log(f"mock_inference: canned reply #{self.calls}")
        return self.reply
