"""
Audit Logging for Post Board

Every change to posts, comments and members is written to instance/logs/audit.log
together with the acting user, as are image file operations, authentication
attempts and denied access.

Usage:
    from app.audit import audit_log_create, audit_log_update, audit_log_delete

    audit_log_create('Post', post.id, f'Created post: {post.title}')
    audit_log_update('Post', post.id, f'Updated post: {post.title}', {'title': 'Old title'})
    audit_log_delete('Post', post_id, f'Deleted post: {title}')
"""

import logging
import os
from typing import Optional, Dict, Any, Union
from flask import current_app
from flask_login import current_user


def setup_audit_logger():
    """Setup and configure the audit logger with proper formatting and file handling."""
    audit_logger = logging.getLogger('audit')
    audit_logger.setLevel(logging.INFO)

    # Prevent duplicate log entries
    if audit_logger.hasHandlers():
        return audit_logger

    log_dir = os.path.join(current_app.instance_path, 'logs')
    os.makedirs(log_dir, exist_ok=True)

    file_handler = logging.FileHandler(os.path.join(log_dir, 'audit.log'), mode='a', encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    audit_logger.addHandler(file_handler)

    # Prevent propagation to root logger
    audit_logger.propagate = False

    return audit_logger


def get_current_user_info() -> str:
    """Get current user information for audit logging."""
    if current_user and current_user.is_authenticated:
        return f"{current_user.username} (ID: {current_user.id})"
    return "SYSTEM"


def audit_log_create(model_name: str, record_id: Union[int, str], description: str):
    """
    Log database record creation.

    Args:
        model_name: Name of the database model (e.g., 'Post', 'Comment')
        record_id: ID of the created record
        description: Human-readable description of the operation
    """
    logger = setup_audit_logger()
    logger.info(f"CREATE | {model_name} | ID: {record_id} | User: {get_current_user_info()} | {description}")


def audit_log_update(model_name: str, record_id: Union[int, str], description: str,
                    changes: Optional[Dict[str, Any]] = None):
    """
    Log database record updates.

    Args:
        model_name: Name of the database model
        record_id: ID of the updated record
        description: Human-readable description of the operation
        changes: Optional dictionary of field changes {'field': 'old_value'}
    """
    logger = setup_audit_logger()
    log_message = f"UPDATE | {model_name} | ID: {record_id} | User: {get_current_user_info()} | {description}"
    if changes:
        log_message += f" | Changed: {', '.join(sorted(changes))}"
    logger.info(log_message)


def audit_log_delete(model_name: str, record_id: Union[int, str], description: str):
    """
    Log database record deletion.

    Args:
        model_name: Name of the database model
        record_id: ID of the deleted record
        description: Human-readable description of the operation
    """
    logger = setup_audit_logger()
    logger.info(f"DELETE | {model_name} | ID: {record_id} | User: {get_current_user_info()} | {description}")


def audit_log_authentication(event_type: str, username: str, success: bool):
    """
    Log authentication events.

    Args:
        event_type: Type of authentication event ('LOGIN', 'LOGOUT', 'REGISTER')
        username: Username involved in the event
        success: Whether the operation was successful
    """
    logger = setup_audit_logger()
    status = "SUCCESS" if success else "FAILURE"
    logger.info(f"AUTH | {event_type} | {status} | User: {username}")


def audit_log_security_event(event_type: str, description: str):
    """
    Log security-related events.

    Args:
        event_type: Type of security event ('ACCESS_DENIED', ...)
        description: Human-readable description of the event
    """
    logger = setup_audit_logger()
    logger.warning(f"SECURITY | {event_type} | User: {get_current_user_info()} | {description}")


def audit_log_file_operation(operation: str, filename: str, description: str):
    """
    Log file operations (uploads, deletions).

    Args:
        operation: Type of file operation ('UPLOAD', 'DELETE', 'REPLACE')
        filename: Name of the file involved
        description: Human-readable description of the operation
    """
    logger = setup_audit_logger()
    logger.info(f"FILE | {operation} | File: {filename} | User: {get_current_user_info()} | {description}")


def get_model_changes(model_instance, form_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Helper function to detect changes between model instance and form data.

    Args:
        model_instance: The database model instance
        form_data: Dictionary of new values from form

    Returns:
        Dictionary of changes with old values
    """
    changes = {}

    for field, new_value in form_data.items():
        if hasattr(model_instance, field):
            old_value = getattr(model_instance, field)
            if old_value != new_value:
                changes[field] = str(old_value) if old_value is not None else None

    return changes
