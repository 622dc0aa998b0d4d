"""Operation catalog, retry policy, the generic dispatcher and resource group facades."""

from tcu_client.dispatch.dispatcher import ResourceDispatcher
from tcu_client.dispatch.operations import (
    OperationCatalog,
    OperationDescriptor,
    load_operation_catalog,
)
from tcu_client.dispatch.resources import RESOURCE_GROUPS, ResourceGroup
from tcu_client.dispatch.retry import RetryOutcome, RetryPolicy, run_with_retries

__all__ = [
    "OperationCatalog",
    "OperationDescriptor",
    "RESOURCE_GROUPS",
    "ResourceDispatcher",
    "ResourceGroup",
    "RetryOutcome",
    "RetryPolicy",
    "load_operation_catalog",
    "run_with_retries",
]
