"""Transport to the remote lint service.

The service is a gRPC server exposing ``proto.EsLintService/LintFile``. The
message types are built at import time from a descriptor so no generated code
has to be shipped:

    message EsLintRequest  { string fileContent = 1; string fileName = 2; }
    message EsLintResponse { string errors = 1; }
"""

import logging
import os
from typing import Protocol

import grpc
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from lintwatch_core.errors import ServiceConnectionError, TransportError
from lintwatch_core.models import LintRequest

logger = logging.getLogger(__name__)

LINT_FILE_METHOD = "/proto.EsLintService/LintFile"


def _build_message_classes():
    """Create the request/response message classes from a file descriptor."""
    field_type = descriptor_pb2.FieldDescriptorProto
    proto_file = descriptor_pb2.FileDescriptorProto(
        name="lintwatch/eslintmessage.proto",
        package="proto",
        syntax="proto3",
    )

    request = proto_file.message_type.add(name="EsLintRequest")
    request.field.add(
        name="fileContent", number=1, type=field_type.TYPE_STRING, label=field_type.LABEL_OPTIONAL
    )
    request.field.add(
        name="fileName", number=2, type=field_type.TYPE_STRING, label=field_type.LABEL_OPTIONAL
    )

    response = proto_file.message_type.add(name="EsLintResponse")
    response.field.add(
        name="errors", number=1, type=field_type.TYPE_STRING, label=field_type.LABEL_OPTIONAL
    )

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(proto_file.SerializeToString())
    return (
        message_factory.GetMessageClass(pool.FindMessageTypeByName("proto.EsLintRequest")),
        message_factory.GetMessageClass(pool.FindMessageTypeByName("proto.EsLintResponse")),
    )


EsLintRequest, EsLintResponse = _build_message_classes()


class LintTransport(Protocol):
    """Protocol for lint service transports."""

    def lint_file(self, request: LintRequest) -> str:
        """Send one file and return the raw diagnostic payload.

        Raises:
            TransportError: If the call fails
        """
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


class GrpcLintTransport:
    """LintTransport over a shared gRPC channel.

    gRPC channels are thread-safe, so concurrent dispatches share one instance.
    """

    def __init__(self, channel: grpc.Channel, target: str, call_timeout: float | None = None):
        """Initialize transport.

        Args:
            channel: Connected channel to the lint service
            target: host:port the channel points to (for messages only)
            call_timeout: Optional per-call deadline in seconds
        """
        self.target = target
        self.call_timeout = call_timeout
        self._channel = channel
        self._lint_file = channel.unary_unary(
            LINT_FILE_METHOD,
            request_serializer=EsLintRequest.SerializeToString,
            response_deserializer=EsLintResponse.FromString,
        )

    def lint_file(self, request: LintRequest) -> str:
        # Undecodable file names arrive surrogate-escaped; proto strings must be valid UTF-8
        file_name = os.fsencode(request.file_path).decode("utf-8", errors="replace")
        try:
            message = EsLintRequest(fileContent=request.file_content, fileName=file_name)
            response = self._lint_file(message, timeout=self.call_timeout)
        except grpc.RpcError as e:
            code = e.code().name if hasattr(e, "code") and e.code() is not None else None
            details = e.details() if hasattr(e, "details") else None
            raise TransportError(request.file_path, details or str(e), code=code) from e
        except ValueError as e:
            raise TransportError(request.file_path, f"request cannot be encoded: {e}") from e
        return response.errors

    def close(self) -> None:
        self._channel.close()

    def __enter__(self) -> "GrpcLintTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect(target: str, timeout: float = 10.0, call_timeout: float | None = None) -> GrpcLintTransport:
    """Open an insecure channel and wait until it is ready.

    Args:
        target: host:port of the lint service
        timeout: Seconds to wait for the connection
        call_timeout: Optional per-call deadline passed to the transport

    Raises:
        ServiceConnectionError: If the service is not reachable in time
    """
    logger.debug(f"Dialing lint server {target} (timeout {timeout:g}s)")
    channel = grpc.insecure_channel(target)
    try:
        grpc.channel_ready_future(channel).result(timeout=timeout)
    except grpc.FutureTimeoutError as e:
        channel.close()
        raise ServiceConnectionError(target, f"no connection within {timeout:g}s") from e
    logger.info(f"Connected to lint server {target}")
    return GrpcLintTransport(channel, target, call_timeout=call_timeout)
