"""Encoder state repository."""

from __future__ import annotations

import json
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from claimrisk.db.schema import EncoderStateRow
from claimrisk.models.domain import EncoderState


class EncoderStateRepository:
    """Repository for encoder_states table operations."""

    def __init__(self, session: Session):
        self.session = session

    def upsert(self, state: EncoderState) -> EncoderStateRow:
        self.session.execute(
            delete(EncoderStateRow).where(EncoderStateRow.version == state.version)
        )
        row = EncoderStateRow(
            version=state.version,
            schema_version=state.schema_version,
            n_records=state.n_records,
            state_json=json.dumps(state.to_dict(), sort_keys=True),
        )
        self.session.add(row)
        self.session.commit()
        return row

    def get_state(self, version: str) -> Optional[EncoderState]:
        row = (
            self.session.query(EncoderStateRow)
            .filter(EncoderStateRow.version == version)
            .first()
        )
        if row is None:
            return None
        return EncoderState.from_dict(json.loads(row.state_json))
