from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from ..core.functions import FunctionRegistry, get_function_registry

router = APIRouter()


@router.get("/functions")
async def list_functions(
    registry: FunctionRegistry = Depends(get_function_registry),
) -> List[Dict[str, Any]]:
    """Function catalog exactly as advertised to the reasoning backend"""
    return registry.schemas()
