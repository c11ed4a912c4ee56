from spacectl.clients.graphql import GraphQLClient
from spacectl.exceptions.system import APIError
from spacectl.loggers import logger

CREATE_NAMESPACE_MUTATION = """mutation CreateSpace($name: String!) {
    createSpace(name: $name) {
        id
    }
}"""

DELETE_NAMESPACE_MUTATION = """mutation DeleteSpace($id: String!) {
    deleteSpace(id: $id) {
        id
    }
}"""


def create_namespace(client: GraphQLClient, namespace: str) -> str:
    """
    Creates a namespace and returns its id.
    """
    data = client.query(CREATE_NAMESPACE_MUTATION, {"name": namespace})
    created = data.get("createSpace") or {}
    if "id" not in created:
        raise APIError(f"createSpace did not return an id for namespace '{namespace}'")
    logger.debug(f"Created namespace {created['id']}")
    return created["id"]


def delete_namespace(client: GraphQLClient, namespace: str):
    client.query(DELETE_NAMESPACE_MUTATION, {"id": namespace})
    logger.debug(f"Deleted namespace {namespace}")
