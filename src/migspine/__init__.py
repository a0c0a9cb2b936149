"""mig-spine -- discovery cache for the cluster migration controller.

Record types are plain dataclasses tagged with relational metadata; the
:mod:`migspine.model` engine maps them to SQLite tables and provides CRUD
plus filtered, paginated listing with a shared label index.

    from migspine.model import Table, open_store
    from migspine.discovery.models import ALL_MODELS, Cluster, Meta

    table = Table(open_store("sqlite:///discovery.db", models=ALL_MODELS))
    table.insert(Cluster(Meta(pk="c1", namespace="openshift-migration", name="host")))
"""

__version__ = "0.1.0"
