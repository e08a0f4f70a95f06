"""
Batch mkdir / rename through an external text editor.
"""
import logging
import os

from ..core.actions import ActionResult, ActionType
from ..core.errors import DestinationCollision, DuoFMError, NameConflictOnCreate

LOGGER = logging.getLogger(__name__)

MKDIR_HEADER = (
    '# New directories: one name per line.\n'
    '# Lines starting with # are ignored.\n'
)


def parse_directory_names(text):
    """Return non-empty, non-comment lines of an edited mkdir buffer."""
    names = []
    for line in text.splitlines():
        name = line.strip()
        if not name or name.startswith('#'):
            continue
        names.append(name)
    return names


def _check_new_directories(base_path, names):
    seen = set()
    for name in names:
        if name in seen:
            raise NameConflictOnCreate(f'Duplicate directory name: {name}')
        seen.add(name)
        if os.path.lexists(os.path.join(base_path, name)):
            raise NameConflictOnCreate(f'A file or folder named {name} already exists.')


def make_directories(base_path, editor):
    """Ask the editor for directory names and create them under ``base_path``."""
    try:
        names = parse_directory_names(editor.edit(MKDIR_HEADER))
        if not names:
            return ActionResult(ActionType.NOTIFY, 'No directories created.')
        _check_new_directories(base_path, names)
    except DuoFMError as exc:
        return ActionResult(ActionType.ERROR, str(exc))

    created = 0
    for name in names:
        try:
            os.makedirs(os.path.join(base_path, name))
        except OSError as exc:
            LOGGER.warning('mkdir %s failed', name, exc_info=True)
            return ActionResult(ActionType.ERROR, f'Created {created}; {name}: {exc.strerror or exc}')
        created += 1
    label = 'directory' if created == 1 else 'directories'
    return ActionResult(ActionType.REFRESH, f'Created {created} {label}')


def plan_renames(base_path, old_names, edited_text):
    """Validate an edited rename buffer and return ``(old, new)`` pairs to apply."""
    lines = edited_text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    if len(lines) != len(old_names):
        raise DuoFMError(
            f'Expected {len(old_names)} lines, got {len(lines)}; nothing renamed.'
        )

    pairs = []
    for old, line in zip(old_names, lines):
        new = line.strip()
        if not new:
            raise DuoFMError(f'Empty name for {old}; nothing renamed.')
        if os.sep in new or (os.altsep and os.altsep in new) or new in ('.', '..'):
            raise DuoFMError(f'Invalid name: {new}')
        if new != old:
            pairs.append((old, new))

    leaving = {old for old, _ in pairs}
    targets = set()
    for _old, new in pairs:
        if new in targets:
            raise DestinationCollision(f'Two entries renamed to {new}; nothing renamed.')
        targets.add(new)
        if new not in leaving and os.path.lexists(os.path.join(base_path, new)):
            raise DestinationCollision(f'{new} already exists; nothing renamed.')
    return pairs


def apply_renames(base_path, pairs):
    """Rename in two phases through temporary names so swaps work."""
    staged = []
    done = 0
    try:
        for index, (old, new) in enumerate(pairs):
            temp = f'.duofm-rename-{os.getpid()}-{index}'
            os.rename(os.path.join(base_path, old), os.path.join(base_path, temp))
            staged.append((old, temp, new))
        for old, temp, new in staged:
            os.rename(os.path.join(base_path, temp), os.path.join(base_path, new))
            done += 1
    except OSError:
        # Put back whatever is still parked under a temporary name.
        for old, temp, _new in staged:
            temp_path = os.path.join(base_path, temp)
            if os.path.lexists(temp_path):
                try:
                    os.rename(temp_path, os.path.join(base_path, old))
                except OSError:
                    LOGGER.warning('Could not restore %s from %s', old, temp, exc_info=True)
        raise
    return done


def batch_rename(base_path, entries, editor):
    """Rename ``entries`` (in ``base_path``) from an edited name list."""
    old_names = [entry.name for entry in entries]
    if not old_names:
        return ActionResult(ActionType.ERROR, 'Nothing selected to rename.')
    try:
        edited = editor.edit('\n'.join(old_names) + '\n')
        pairs = plan_renames(base_path, old_names, edited)
    except DuoFMError as exc:
        return ActionResult(ActionType.ERROR, str(exc))
    if not pairs:
        return ActionResult(ActionType.NOTIFY, 'No names changed.')
    try:
        count = apply_renames(base_path, pairs)
    except OSError as exc:
        return ActionResult(ActionType.ERROR, f'Rename failed: {exc.strerror or exc}')
    return ActionResult(ActionType.REFRESH, f'Renamed {count} item(s)')
