from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='TrackedTime',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_time', models.DateTimeField()),
                ('end_time', models.DateTimeField(blank=True, null=True)),
                ('duration', models.PositiveBigIntegerField(default=0)),
                ('is_break', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tracked_times', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tracked_time',
                'ordering': ['start_time'],
                'indexes': [models.Index(fields=['user', 'start_time'], name='tracked_user_start_idx'), models.Index(fields=['user', 'is_break', 'start_time'], name='tracked_user_break_idx')],
            },
        ),
        migrations.CreateModel(
            name='BreakSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('break_duration', models.PositiveIntegerField(default=30, validators=[django.core.validators.MinValueValidator(0)])),
                ('auto_insert', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='break_settings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'break_settings',
            },
        ),
    ]
