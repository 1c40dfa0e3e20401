from django.urls import path
from . import api, views

app_name = 'pharmadesk'

urlpatterns = [
    path('', views.dashboard, name='dashboard'),
    path('tasks/new/', views.task_create, name='task_create'),
    path('tasks/<uuid:pk>/edit/', views.task_edit, name='task_edit'),
    path('pending/', views.pending, name='pending'),
    path('archives/', views.archives, name='archives'),
    path('reports/', views.reports, name='reports'),
    path('users/', views.users, name='users'),
    path('users/<uuid:pk>/', views.user_detail, name='user_detail'),
    path('users/<uuid:pk>/status/', views.user_status, name='user_status'),
    path('messages/', views.messages_page, name='messages'),
    path('messages/compose/', views.compose, name='compose'),
    path('knowledge/', views.knowledge_base, name='knowledge'),
    path('knowledge/resources/new/', views.resource_edit, name='resource_create'),
    path('knowledge/resources/<uuid:pk>/', views.resource_detail, name='resource_detail'),
    path('knowledge/resources/<uuid:pk>/edit/', views.resource_edit, name='resource_edit'),
    path('knowledge/folders/new/', views.folder_save, name='folder_create'),
    path('knowledge/folders/<uuid:pk>/rename/', views.folder_save, name='folder_rename'),
    path('briefing/', views.briefing, name='briefing'),
    path('account/', views.account, name='account'),
    path('account/password/required/', views.force_password_change, name='force_password_change'),

    path('api/ai/', api.api_ai, name='api_ai'),
    path('api/tasks/<uuid:pk>/checklist/<str:item_id>/toggle/', api.task_toggle_item, name='api_task_toggle_item'),
    path('api/tasks/<uuid:pk>/status/', api.task_status, name='api_task_status'),
    path('api/tasks/<uuid:pk>/privacy/', api.task_privacy, name='api_task_privacy'),
    path('api/tasks/<uuid:pk>/priority/', api.task_priority, name='api_task_priority'),
    path('api/tasks/<uuid:pk>/comments/', api.task_comment, name='api_task_comment'),
    path('api/tasks/<uuid:pk>/archive/', api.task_archive, name='api_task_archive'),
    path('api/tasks/<uuid:pk>/delete/', api.task_delete, name='api_task_delete'),
    path('api/tasks/<uuid:pk>/approve/', api.task_approve, name='api_task_approve'),
    path('api/tasks/<uuid:pk>/reject/', api.task_reject, name='api_task_reject'),
    path('api/tasks/<uuid:pk>/remind/', api.task_remind, name='api_task_remind'),
    path('api/messages/<uuid:pk>/status/', api.message_status, name='api_message_status'),
    path('api/messages/<uuid:pk>/delete/', api.message_delete, name='api_message_delete'),
    path('api/briefing/', api.briefing_generate, name='api_briefing'),
    path('api/briefing/send/', api.briefing_send, name='api_briefing_send'),
    path('api/knowledge/upload/', api.knowledge_upload, name='api_knowledge_upload'),
    path('api/knowledge/resources/<uuid:pk>/ask/', api.resource_ask, name='api_resource_ask'),
    path('api/knowledge/resources/<uuid:pk>/delete/', api.resource_delete, name='api_resource_delete'),
    path('api/knowledge/folders/<uuid:pk>/delete/', api.folder_delete, name='api_folder_delete'),
]
