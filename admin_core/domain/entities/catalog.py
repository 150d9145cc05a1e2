"""Descriptors for every entity kind administered through the console.

Selection keys are always the descriptor's ``id_field``. Older screens
keyed users by ``login`` and labels/genres by ``identifier``; those
business keys are plain fields here.
"""

from .descriptor import AUDIT_FIELDS, ArchiveStrategy, EntityDescriptor

# Labels and genres also carry a server-generated slug.
_GENERATED_SLUG = AUDIT_FIELDS | {"identifier"}

USERS = EntityDescriptor(
    name="users",
    path="/users",
    archive_strategy=ArchiveStrategy.RELOAD,
)
ROLES = EntityDescriptor(
    name="roles",
    path="/roles",
    id_field="identifier",
    archive_strategy=ArchiveStrategy.RELOAD,
)
MODULES = EntityDescriptor(
    name="modules",
    path="/modules",
    archive_strategy=ArchiveStrategy.RELOAD,
)
LANGUAGES = EntityDescriptor(
    name="languages",
    path="/languages",
    archive_strategy=ArchiveStrategy.RELOAD,
)
LABELS = EntityDescriptor(name="labels", path="/labels", server_owned_fields=_GENERATED_SLUG)
GENRES = EntityDescriptor(name="genres", path="/genres", server_owned_fields=_GENERATED_SLUG)
AGREEMENTS = EntityDescriptor(name="agreements", path="/agreements")
CONSENTS = EntityDescriptor(name="consents", path="/consents")
BILLINGS = EntityDescriptor(name="billings", path="/billings")
SUBSCRIPTIONS = EntityDescriptor(name="subscriptions", path="/subscriptions")
SUBSCRIPTION_PRODUCTS = EntityDescriptor(
    name="subscription-products",
    path="/subscription-products",
)

CATALOG: dict[str, EntityDescriptor] = {
    descriptor.name: descriptor
    for descriptor in (
        USERS,
        ROLES,
        MODULES,
        LANGUAGES,
        LABELS,
        GENRES,
        AGREEMENTS,
        CONSENTS,
        BILLINGS,
        SUBSCRIPTIONS,
        SUBSCRIPTION_PRODUCTS,
    )
}
