"""
URL mappings for the CBT exams server.
"""

from django.urls import path

from cbt_exams import views

app_name = 'cbt_exams'

urlpatterns = [
    path('cbt_exams/v1/test', views.TestView.as_view(),
         name='test'
         ),
    path('cbt_exams/v1/test/<int:test_id>', views.TestView.as_view(),
         name='test.by_id'
         ),
    path('cbt_exams/v1/test/<int:test_id>/status', views.TestStatusView.as_view(),
         name='test.status'
         ),
    path('cbt_exams/v1/test/<int:test_id>/question', views.TestQuestionView.as_view(),
         name='test.question'
         ),
    path('cbt_exams/v1/test/<int:test_id>/enrollment', views.TestEnrollmentView.as_view(),
         name='test.enrollment'
         ),
    path('cbt_exams/v1/test/<int:test_id>/enrollment/<int:student_id>', views.TestEnrollmentView.as_view(),
         name='test.enrollment.by_id'
         ),
    path('cbt_exams/v1/exam/start', views.ExamStartView.as_view(),
         name='exam.start'
         ),
    path('cbt_exams/v1/exam/<int:session_id>', views.ExamSessionView.as_view(),
         name='exam.session'
         ),
    path('cbt_exams/v1/exam/<int:session_id>/answer', views.ExamAnswerView.as_view(),
         name='exam.answer'
         ),
    path('cbt_exams/v1/exam/<int:session_id>/submit', views.ExamSubmitView.as_view(),
         name='exam.submit'
         ),
    path('cbt_exams/v1/exam/<int:session_id>/grade', views.ExamGradingView.as_view(),
         name='exam.grade'
         ),
    path('cbt_exams/v1/auth/token', views.RefreshTokenIssueView.as_view(),
         name='auth.token'
         ),
    path('cbt_exams/v1/auth/refresh', views.RefreshTokenRotateView.as_view(),
         name='auth.refresh'
         ),
    path('cbt_exams/v1/auth/logout', views.RefreshTokenRevokeView.as_view(),
         name='auth.logout'
         ),
    path('cbt_exams/v1/auth/sessions', views.RefreshTokenSessionsView.as_view(),
         name='auth.sessions'
         ),
    path('cbt_exams/v1/auth/sessions/<int:token_id>', views.RefreshTokenSessionsView.as_view(),
         name='auth.sessions.by_id'
         ),
]
