"""Pair request packets with their acknowledgements.

Every packet ends up in exactly one bucket:

- singular: packets that expect no reply (ack type 0), whatever their command type
- paired: a request expecting a reply and the first unmatched acknowledgement
  in the opposite direction with the same sequence id
- unpaired: requests without such an acknowledgement and acknowledgements
  left over after all requests were matched

Matching only looks at the sequence id and direction. Sequence ids wrap, so
unrelated exchanges that reuse an id can be paired with each other.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from duml_trace.instrumentation import timed
from duml_trace.logging_abstraction import get_logger
from duml_trace.metrics import registry
from duml_trace.protocol.frame_extractor import Direction
from duml_trace.protocol.packet_types import AckType, CommandType
from duml_trace.reassembly import TimestampedPacket

logger = get_logger(__name__)


class RenderedPacket(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    direction: Direction
    packet: str


class PairedResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: RenderedPacket
    response: RenderedPacket


class ClassifiedOutput(BaseModel):
    """The three disjoint result sets; serializes with the report's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    paired: list[PairedResult] = Field(default_factory=list, alias="pairedPackets")
    unpaired: list[RenderedPacket] = Field(default_factory=list, alias="unpairedPackets")
    singular: list[RenderedPacket] = Field(default_factory=list, alias="singularPackets")


def render(item: TimestampedPacket) -> RenderedPacket:
    return RenderedPacket(
        timestamp=item.timestamp,
        direction=item.direction,
        packet=item.packet.to_short_string(),
    )


def is_request(item: TimestampedPacket) -> bool:
    """Request that expects a reply."""
    return item.packet.command_type == CommandType.REQUEST and item.packet.ack_type != AckType.NO_ACK


def is_response(item: TimestampedPacket) -> bool:
    """Acknowledgement that is not itself a no-reply packet."""
    return item.packet.command_type == CommandType.ACK and item.packet.ack_type != AckType.NO_ACK


def _matches(request: TimestampedPacket, response: TimestampedPacket) -> bool:
    return (
        response.packet.sequence_id == request.packet.sequence_id
        and response.direction != request.direction
    )


@timed("pairing")
def pair_packets(packets: Sequence[TimestampedPacket]) -> ClassifiedOutput:
    """Classify ``packets`` into paired, unpaired and singular sets.

    Requests are matched in encounter order; each one takes the earliest
    acknowledgement that matches and is not yet taken. Unpaired output lists
    unmatched requests first, then leftover acknowledgements.
    """
    output = ClassifiedOutput()
    output.singular = [render(p) for p in packets if p.packet.ack_type == AckType.NO_ACK]

    requests = [p for p in packets if is_request(p)]
    responses = [p for p in packets if is_response(p)]
    matched_responses: set[int] = set()
    unmatched_requests: set[int] = set(range(len(requests)))

    for req_index, request in enumerate(requests):
        resp_index = next(
            (
                i
                for i, response in enumerate(responses)
                if i not in matched_responses and _matches(request, response)
            ),
            None,
        )
        unmatched_requests.discard(req_index)
        if resp_index is None:
            output.unpaired.append(render(request))
            continue
        matched_responses.add(resp_index)
        output.paired.append(PairedResult(request=render(request), response=render(responses[resp_index])))

    output.unpaired.extend(render(r) for i, r in enumerate(responses) if i not in matched_responses)
    # Empty unless the loop above left a request unsettled
    output.unpaired.extend(render(requests[i]) for i in sorted(unmatched_requests))

    registry.record_pairing_results(len(output.paired), len(output.unpaired), len(output.singular))
    logger.info(
        "Paired %d, unpaired %d, singular %d of %d packets",
        len(output.paired),
        len(output.unpaired),
        len(output.singular),
        len(packets),
    )
    return output
