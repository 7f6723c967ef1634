from fastapi import Request

# Collaborators are built once in server.create_app and kept on app.state

def get_payment_processor(request: Request):
    return request.app.state.payment_processor

def get_metadata_service(request: Request):
    return request.app.state.metadata_service

def get_storage(request: Request):
    return request.app.state.storage

def get_settings(request: Request):
    return request.app.state.settings
