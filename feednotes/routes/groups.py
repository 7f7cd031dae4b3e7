"""
Group routes: folders that feeds can be filed under.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ..config import get_settings, get_store
from ..exceptions import require_group
from ..schemas import AddGroupRequest, GroupResponse, UpdateGroupRequest
from ..settings import FeedGroup, PluginSettings, SettingsStore, new_group_id, remove_group

router = APIRouter(prefix="/groups", tags=["groups"])


def _clean_name(name: str, settings: PluginSettings, exclude: FeedGroup | None = None) -> str:
    name = name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Group name is required")
    for group in settings.groups:
        if group is not exclude and group.name.lower() == name.lower():
            raise HTTPException(status_code=400, detail="Group already exists")
    return name


@router.get("")
async def list_groups(
    settings: Annotated[PluginSettings, Depends(get_settings)],
) -> list[GroupResponse]:
    """List all groups."""
    return [GroupResponse.from_settings(g, settings) for g in settings.groups]


@router.post("")
async def add_group(
    request: AddGroupRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> GroupResponse:
    """Create a group."""
    group = FeedGroup(id=new_group_id(), name=_clean_name(request.name, settings))
    settings.groups.append(group)
    store.save(settings)
    return GroupResponse.from_settings(group, settings)


@router.put("/{group_id}")
async def update_group(
    group_id: str,
    request: UpdateGroupRequest,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> GroupResponse:
    """Rename or collapse a group. Renaming moves where new notes go."""
    group = require_group(settings.find_group(group_id))
    if request.name is not None:
        group.name = _clean_name(request.name, settings, exclude=group)
    if request.collapsed is not None:
        group.collapsed = request.collapsed
    store.save(settings)
    return GroupResponse.from_settings(group, settings)


@router.delete("/{group_id}")
async def delete_group(
    group_id: str,
    settings: Annotated[PluginSettings, Depends(get_settings)],
    store: Annotated[SettingsStore, Depends(get_store)],
) -> dict:
    """Delete a group. Its feeds are kept and become ungrouped."""
    require_group(settings.find_group(group_id))
    remove_group(settings, group_id)
    store.save(settings)
    return {"success": True}
