from fastapi import Request
from bulkshorts.modules.media.service import MediaRegistry
from bulkshorts.modules.posts.service import PostRegistry
from bulkshorts.platform.ports.url_validator import UrlValidatorPort

def media_registry(request: Request) -> MediaRegistry:
    return request.app.state.media

def post_registry(request: Request) -> PostRegistry:
    return request.app.state.posts

def url_validator(request: Request) -> UrlValidatorPort:
    return request.app.state.url_validator
