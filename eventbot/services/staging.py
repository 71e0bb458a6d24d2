from eventbot.services.draft import Draft


class DraftStaging:
    """Drafts waiting for the submitter's answer to "save as template?", one per actor.

    A newer submission overwrites the previous entry.
    """

    def __init__(self) -> None:
        self._drafts: dict[int, Draft] = {}

    def put(self, actor_id: int, draft: Draft) -> None:
        self._drafts[actor_id] = draft

    def get(self, actor_id: int) -> Draft | None:
        return self._drafts.get(actor_id)

    def discard(self, actor_id: int) -> None:
        self._drafts.pop(actor_id, None)

    def __contains__(self, actor_id: int) -> bool:
        return actor_id in self._drafts
