from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Exploration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_key', models.CharField(db_index=True, max_length=40)),
                ('word', models.CharField(max_length=100)),
                ('content_preview', models.TextField(blank=True)),
                ('visits', models.PositiveIntegerField(default=1)),
                ('explored_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-explored_at', '-id'],
                'unique_together': {('session_key', 'word')},
            },
        ),
    ]
