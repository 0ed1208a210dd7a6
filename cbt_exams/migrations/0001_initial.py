from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import model_utils.fields
import simple_history.models


def _test_fields():
    """
    Columns shared by the test table and its history table
    """
    return [
        ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
        ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
        ('title', models.CharField(max_length=255)),
        ('description', models.TextField(blank=True, default='')),
        ('duration_minutes', models.PositiveIntegerField()),
        ('total_marks', models.FloatField(default=0)),
        ('passing_score', models.FloatField(blank=True, null=True)),
        ('published', models.BooleanField(default=False)),
        ('scheduled_start_time', models.DateTimeField(blank=True, null=True)),
        ('scheduled_end_time', models.DateTimeField(blank=True, null=True)),
        ('start_buffer_minutes', models.PositiveIntegerField(default=0)),
        ('end_buffer_minutes', models.PositiveIntegerField(default=0)),
        ('time_enforcement', models.CharField(choices=[('STRICT', 'Strict'), ('LENIENT', 'Lenient'), ('NONE', 'None')], default='STRICT', max_length=16)),
        ('max_attempts', models.PositiveIntegerField(blank=True, null=True)),
        ('allowed_ips', models.TextField(blank=True, default='')),
        ('secure_browser', models.BooleanField(default=False)),
        ('randomize_questions', models.BooleanField(default=False)),
        ('shuffle_choices', models.BooleanField(default=False)),
        ('number_of_questions', models.PositiveIntegerField(blank=True, null=True)),
        ('grading_backend', models.CharField(blank=True, default=None, max_length=255, null=True)),
    ]


SESSION_STATUS_CHOICES = [
    ('NOT_STARTED', 'Not started'), ('IN_PROGRESS', 'In progress'), ('COMPLETED', 'Completed'),
    ('SUBMITTED', 'Submitted'), ('TIMED_OUT', 'Timed out'), ('CANCELLED', 'Cancelled'),
    ('UNDER_REVIEW', 'Under review'), ('PARTIALLY_GRADED', 'Partially graded'),
    ('FULLY_GRADED', 'Fully graded'), ('GRADED', 'Graded'),
]

QUESTION_TYPE_CHOICES = [
    ('MULTIPLE_CHOICE', 'Multiple choice'), ('MULTIPLE_SELECT', 'Multiple select'),
    ('TRUE_FALSE', 'True / False'), ('FILL_IN_THE_BLANK', 'Fill in the blank'), ('ESSAY', 'Essay'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Test',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
            ] + _test_fields() + [
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cbt_tests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'cbt_test',
            },
        ),
        migrations.CreateModel(
            name='HistoricalTest',
            fields=[
                ('id', models.IntegerField(auto_created=True, blank=True, db_index=True, verbose_name='ID')),
            ] + _test_fields() + [
                ('history_id', models.AutoField(primary_key=True, serialize=False)),
                ('history_date', models.DateTimeField(db_index=True)),
                ('history_change_reason', models.CharField(max_length=100, null=True)),
                ('history_type', models.CharField(choices=[('+', 'Created'), ('~', 'Changed'), ('-', 'Deleted')], max_length=1)),
                ('created_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('history_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'historical test',
                'verbose_name_plural': 'historical tests',
                'db_table': 'cbt_testhistory',
                'ordering': ('-history_date', '-history_id'),
                'get_latest_by': ('history_date', 'history_id'),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name='Question',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('text', models.TextField()),
                ('question_type', models.CharField(choices=QUESTION_TYPE_CHOICES, max_length=32)),
                ('choices', models.JSONField(blank=True, default=list)),
                ('correct_answer', models.TextField(blank=True, default='')),
                ('max_marks', models.FloatField(default=1)),
                ('order', models.PositiveIntegerField(default=0)),
                ('test', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='questions', to='cbt_exams.test')),
            ],
            options={
                'db_table': 'cbt_question',
                'ordering': ('order', 'id'),
            },
        ),
        migrations.CreateModel(
            name='StudentExam',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('start_time', models.DateTimeField(null=True)),
                ('end_time', models.DateTimeField(null=True)),
                ('completed', models.BooleanField(db_index=True, default=False)),
                ('score', models.FloatField(null=True)),
                ('percentage', models.FloatField(null=True)),
                ('graded', models.BooleanField(default=False)),
                ('status', models.CharField(choices=SESSION_STATUS_CHOICES, default='NOT_STARTED', max_length=32)),
                ('time_spent_seconds', models.PositiveIntegerField(null=True)),
                ('current_question_index', models.PositiveIntegerField(default=0)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cbt_sessions', to=settings.AUTH_USER_MODEL)),
                ('test', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='cbt_exams.test')),
            ],
            options={
                'db_table': 'cbt_studentexam',
                'verbose_name': 'exam session',
            },
        ),
        migrations.AddConstraint(
            model_name='studentexam',
            constraint=models.UniqueConstraint(condition=models.Q(('completed', False)), fields=('student', 'test'), name='cbt_one_active_session_per_student_test'),
        ),
        migrations.CreateModel(
            name='StudentExamQuestion',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order', models.PositiveIntegerField()),
                ('choices', models.JSONField(blank=True, default=list)),
                ('answered', models.BooleanField(default=False)),
                ('question', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='cbt_exams.question')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='session_questions', to='cbt_exams.studentexam')),
            ],
            options={
                'db_table': 'cbt_studentexamquestion',
                'ordering': ('order',),
                'unique_together': {('session', 'question')},
            },
        ),
        migrations.CreateModel(
            name='StudentAnswer',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('answer', models.TextField(blank=True, default='')),
                ('score', models.FloatField(null=True)),
                ('submitted_late', models.BooleanField(default=False)),
                ('manually_graded', models.BooleanField(default=False)),
                ('graded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('question', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='answers', to='cbt_exams.question')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='answers', to='cbt_exams.studentexam')),
            ],
            options={
                'db_table': 'cbt_studentanswer',
                'unique_together': {('session', 'question')},
            },
        ),
        migrations.CreateModel(
            name='RefreshToken',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('username', models.CharField(db_index=True, max_length=255)),
                ('token_hash', models.CharField(max_length=64, unique=True)),
                ('expiry_date', models.DateTimeField()),
                ('revoked', models.BooleanField(default=False)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, default='', max_length=512)),
                ('last_used_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'cbt_refreshtoken',
            },
        ),
        migrations.CreateModel(
            name='SystemConfig',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('key', models.CharField(max_length=255, unique=True)),
                ('value', models.TextField(blank=True, default='')),
            ],
            options={
                'db_table': 'cbt_systemconfig',
                'verbose_name': 'system configuration',
            },
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.AutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created', model_utils.fields.AutoCreatedField(default=django.utils.timezone.now, editable=False, verbose_name='created')),
                ('modified', model_utils.fields.AutoLastModifiedField(default=django.utils.timezone.now, editable=False, verbose_name='modified')),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('examiner', 'Examiner'), ('proctor', 'Proctor'), ('student', 'Student')], max_length=32)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='cbt_role', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'cbt_userrole',
            },
        ),
    ]
