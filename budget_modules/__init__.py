"""
budget_modules -- Entity lifecycle modules.

One sub-package per entity (``budget``, ``revision``, ``commitment``,
``actual``), each holding its transition table (``workflows``) and its
lifecycle service (``service``).  Modules import budget_kernel,
budget_engines, budget_config and ``budget_services.workflow_executor``.
"""
