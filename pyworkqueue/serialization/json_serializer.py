# pyworkqueue/serialization/json_serializer.py
import json
from typing import Dict, Any

from pyworkqueue.serialization.base import BaseSerializer
from pyworkqueue.common.exceptions import PayloadDecodeError

# Compact form: [{"a":1}], not [{"a": 1}]
_SEPARATORS = (",", ":")


def dumps(value: Any) -> str:
    return json.dumps(value, separators=_SEPARATORS, default=str)


class JsonSerializer(BaseSerializer):
    def serialize_payload(self, payload: Dict[str, Any]) -> str:
        # Strict: payloads must round-trip unchanged
        return json.dumps(payload, separators=_SEPARATORS)

    def deserialize_payload(self, data: str) -> Dict[str, Any]:
        payload = self._loads(data)
        if not isinstance(payload, dict):
            raise PayloadDecodeError(
                f"Expected a JSON object for a job payload, got {type(payload).__name__}"
            )
        return payload

    def serialize_record(self, record: Dict[str, Any]) -> str:
        return dumps(record)

    def deserialize_record(self, data: str) -> Dict[str, Any]:
        record = self._loads(data)
        if not isinstance(record, dict):
            raise PayloadDecodeError(
                f"Expected a JSON object for a record, got {type(record).__name__}"
            )
        return record

    def _loads(self, data: Any) -> Any:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return json.loads(data)
        except (TypeError, json.JSONDecodeError) as e:
            raise PayloadDecodeError(f"Could not decode stored data: {data!r}") from e
