"""
Protobuf messages of the BuildKit session auth service (``moby.filesync.v1.Auth``).

Only the ``Credentials`` call is described. The descriptor is assembled at import time into a private pool, so the
message classes do not clash with other copies of the BuildKit protos loaded in the same interpreter.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "moby.filesync.v1"
SERVICE_NAME = f"{PACKAGE}.Auth"
CREDENTIALS_METHOD = "Credentials"
CREDENTIALS_PATH = f"/{SERVICE_NAME}/{CREDENTIALS_METHOD}"

_FIELD = descriptor_pb2.FieldDescriptorProto
_FILE_NAME = "spacectl/buildkit/auth.proto"


def _string_field(message: descriptor_pb2.DescriptorProto, name: str, number: int):
    message.field.add(name=name, json_name=name, number=number, type=_FIELD.TYPE_STRING, label=_FIELD.LABEL_OPTIONAL)


def _auth_file() -> descriptor_pb2.FileDescriptorProto:
    f = descriptor_pb2.FileDescriptorProto(name=_FILE_NAME, package=PACKAGE, syntax="proto3")

    request = f.message_type.add(name="CredentialsRequest")
    _string_field(request, "Host", 1)

    response = f.message_type.add(name="CredentialsResponse")
    _string_field(response, "Username", 1)
    _string_field(response, "Secret", 2)

    service = f.service.add(name="Auth")
    service.method.add(
        name=CREDENTIALS_METHOD,
        input_type=f".{PACKAGE}.CredentialsRequest",
        output_type=f".{PACKAGE}.CredentialsResponse",
    )
    return f


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_auth_file().SerializeToString())

DESCRIPTOR = _pool.FindFileByName(_FILE_NAME)

CredentialsRequest = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.CredentialsRequest"))
CredentialsResponse = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.CredentialsResponse"))
