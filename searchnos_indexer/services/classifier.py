from searchnos_indexer.models.kinds import Kind, Route

# Registry-prinsipp: new kinds are routed here (once), and used by pipeline and relay filter.
KIND_ROUTES = {
    Kind.METADATA: Route.UPSERT,
    Kind.TEXT_NOTE: Route.UPSERT,
    Kind.LONG_FORM_TEXT_NOTE: Route.UPSERT,
    Kind.EVENT_DELETION: Route.DELETE,
}


def classify(kind: int) -> Route:
    return KIND_ROUTES.get(kind, Route.IGNORE)
